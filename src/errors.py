# src/errors.py
"""
Error taxonomy for the VEL pipeline.

- ConfigurationError: malformed alias overrides, missing columns, bad config. Fatal.
- FetchError: an external source was unreachable or returned nothing. Fatal.
- ParseError: a single cost ratio could not be turned into a positive number.
  Recovered locally by dropping the record.

Currency lookups outside the fetched index range raise the builtin LookupError
(as KeyError) and are fatal.
"""


class ConfigurationError(ValueError):
    """Static inputs or configuration are malformed."""


class FetchError(RuntimeError):
    """An external data source failed or returned an empty payload."""


class ParseError(ValueError):
    """A cost-effectiveness ratio is unparseable or non-positive."""
