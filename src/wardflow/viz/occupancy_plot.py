"""Visualization of bed occupancy over time.

Functions
---------
plot_occupancy_series : function
    Line chart of occupied beds per unit with capacity reference lines

Notes
-----
* One line is drawn per unit present in the samples
* Where a capacity is given for a unit, a dashed line marks it in the same
  colour, and sample points above capacity are highlighted
* Counts above capacity are plotted as they are; nothing is clamped

Examples
--------
>>> from wardflow.sampler import sample
>>> from wardflow.viz.occupancy_plot import plot_occupancy_series
>>> samples = sample(patients, [Unit.NICU, Unit.PICU], start, end, step_days=1)
>>> plot_occupancy_series(samples, {Unit.NICU: 20, Unit.PICU: 10}, title="Last 30 days")
"""

import matplotlib.pyplot as plt

from wardflow.sampler import samples_to_frame


def plot_occupancy_series(
    samples,
    capacities=None,
    title=None,
    media_file_path=None,
    return_figure=False,
):
    """Plot occupied beds per unit for a sampled date range.

    Parameters
    ----------
    samples : list of OccupancySample
        Output of :func:`wardflow.sampler.sample`
    capacities : dict, optional
        Bed capacity per ``Unit``; units without an entry get no capacity line
    title : str, optional
        Title for the plot
    media_file_path : pathlib.Path, optional
        Directory to save the plot in. If None, the plot is not saved.
    return_figure : bool, default=False
        If True, returns the figure instead of displaying it

    Returns
    -------
    matplotlib.figure.Figure or None
        The figure object if return_figure is True, otherwise None
    """
    capacities = capacities or {}
    df = samples_to_frame(samples)

    fig = plt.figure(figsize=(10, 6))
    ax = plt.gca()

    for unit in samples[0].per_unit_counts if samples else []:
        series = df[unit.name]
        (line,) = ax.plot(df.index, series, marker="o", markersize=3, label=unit.name)

        capacity = capacities.get(unit)
        if capacity is None:
            continue
        ax.axhline(
            capacity,
            color=line.get_color(),
            linestyle="--",
            linewidth=1,
            label=f"{unit.name} capacity",
        )
        over = series[series > capacity]
        if not over.empty:
            ax.scatter(over.index, over.values, color="red", zorder=3)

    if title:
        plt.title(title)
    else:
        plt.title("Bed Occupancy")
    plt.xlabel("Date")
    plt.ylabel("Occupied beds")
    plt.ylim(bottom=0)
    plt.grid(True, alpha=0.3)
    if samples:
        plt.legend()

    ax.spines["top"].set_visible(False)
    ax.spines["right"].set_visible(False)
    fig.autofmt_xdate()

    plt.tight_layout()

    if media_file_path:
        plt.savefig(media_file_path / "occupancy_series.png", dpi=300)

    if return_figure:
        return fig
    else:
        plt.show()
        plt.close()
