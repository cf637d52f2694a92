import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
import seaborn as sns

from analysis import X_COL, Y_COL


def plot_vel_vs_spending(joined, regression, fig_path):
    """Scatter of mean log VEL against log spending with the fitted OLS line."""
    df = joined[[X_COL, Y_COL]].replace([np.inf, -np.inf], np.nan).dropna()
    a = float(regression.loc["const", "coef"])
    b = float(regression.loc[X_COL, "coef"])
    lo, hi = float(regression.loc[X_COL, "ci_low"]), float(regression.loc[X_COL, "ci_high"])

    fig, ax = plt.subplots(figsize=(7, 5))
    sns.scatterplot(data=df, x=X_COL, y=Y_COL, ax=ax, color="#345995",
                    edgecolor="k", alpha=0.6, s=25)
    xs = np.linspace(df[X_COL].min(), df[X_COL].max(), 100)
    ax.plot(xs, a + b * xs, color="#B80C09", lw=2,
            label=f"elasticity = {b:.2f} [{lo:.2f}, {hi:.2f}]")

    ax.set_xlabel("Log health expenditure per capita\n(constant 2010 US$)")
    ax.set_ylabel("Mean log VEL\n(constant 2010 US$)")
    ax.grid(which="major", linestyle="--", alpha=0.2)
    ax.legend(loc="upper left", frameon=True, edgecolor="k")
    sns.despine()
    plt.tight_layout()
    fig.savefig(fig_path, bbox_inches="tight")
    plt.close(fig)
    return fig_path


def plot_covariance_heatmap(cov_share, fig_path):
    """Heat map of the normalized covariance decomposition (cells sum to one)."""
    labels = [str(c).replace("_", "-").capitalize() for c in cov_share.columns]
    fig, ax = plt.subplots(figsize=(5.5, 4.5))
    sns.heatmap(pd.DataFrame(cov_share.to_numpy(), index=labels, columns=labels),
                annot=True, fmt=".3f", cmap="Spectral_r", center=0,
                linewidths=0.5, linecolor="k", ax=ax,
                cbar_kws={"label": "Share of total spending variance"})
    ax.set_title("Variance decomposition", loc="left", fontweight="bold")
    plt.tight_layout()
    fig.savefig(fig_path, bbox_inches="tight")
    plt.close(fig)
    return fig_path
