import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
import mapclassify as mc


def safe_quantile_breaks(values, k=5):
    """
    Upper class bounds for a choropleth. Quantiles when there is enough spread,
    otherwise fewer classes (down to a single one).
    """
    vals = np.asarray(values, dtype=float)
    vals = vals[np.isfinite(vals)]
    if vals.size == 0:
        raise ValueError("No finite values to classify.")
    k = max(1, min(k, np.unique(vals).size))
    if k == 1:
        return [float(vals.max())]
    return np.unique(mc.Quantiles(vals, k=k).bins).tolist()


def country_mean_vel(aggregated):
    """
    Per-country mean of mean_log_vel across years, back on the dollar scale.
    """
    g = aggregated.groupby("country_code")["mean_log_vel"].mean()
    return pd.DataFrame({"country_code": g.index, "vel": np.exp(g.to_numpy())})


def plot_vel_map(aggregated, boundaries, fig_path, k=5):
    """
    Choropleth of the geometric-mean VEL per country. `boundaries` is a
    GeoDataFrame with country_code (ISO2) and geometry.
    """
    vel = country_mean_vel(aggregated)
    g = boundaries.merge(vel, on="country_code", how="left")
    bins = safe_quantile_breaks(g["vel"], k=k)
    print(f"[map] {int(g['vel'].notna().sum())} of {len(g)} polygons carry a VEL.")

    plt.rcParams.update({"font.size": 10})
    fig, ax = plt.subplots(1, 1, figsize=(14, 7))
    g[g["vel"].isna()].plot(ax=ax, color="#eeeeee", edgecolor="#999999", linewidth=0.3)
    g[g["vel"].notna()].plot(
        ax=ax,
        column="vel",
        scheme="UserDefined",
        classification_kwds={"bins": bins},
        cmap="Spectral_r",
        edgecolor="k",
        linewidth=0.3,
        legend=True,
        legend_kwds={"title": "VEL (2010 US$)", "fontsize": 9, "loc": "lower left",
                     "frameon": True, "edgecolor": "k"},
    )
    ax.set_axis_off()
    plt.savefig(fig_path, bbox_inches="tight")
    plt.close(fig)
    return fig_path
