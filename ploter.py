import os

import numpy as np
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt

from sngen import channel_label


def plot_rate_vs_time(rates, grid, channels, outpath, filename="rate_vs_time.png",
                      title_prefix="", logy=None):
    """Plot the expected interaction rate per second versus time.

    Channels are grouped by their reporting label (e.g. ``nuebar + p``);
    the total is drawn on top.

    Automatically saves both linear and log scale versions.

    Parameters
    ----------
    rates : ndarray
        Expected counts, shape (n_time_bins, n_energy_bins, n_channels)
    grid : EnergyTimeGrid
        Binning the rates were integrated on
    channels : sequence
        Reaction channels in the column order of ``rates``
    outpath : str
        Directory path for output
    filename : str
        Output image file name (will add suffixes for linear/log versions)
    title_prefix : str
        Optional prefix for plot title
    logy : bool, optional
        If specified, only save that version. If None, save both.
    """
    per_channel = np.asarray(rates).sum(axis=1) / grid.dt
    labels = [channel_label(ch) for ch in channels]
    curves = {}
    for c, label in enumerate(labels):
        curves[label] = curves.get(label, 0.0) + per_channel[:, c]

    plot_versions = [False, True] if logy is None else [logy]
    for use_logy in plot_versions:
        _plot_rate_single(grid.time_centers, curves, per_channel.sum(axis=1), outpath,
                          filename, title_prefix, use_logy)


def _plot_rate_single(times, curves, total, outpath, filename, title_prefix, logy):
    """Internal function to plot a single version (linear or log)."""
    plt.figure(figsize=(8, 6))
    for label, curve in curves.items():
        if np.any(curve > 0):
            plt.plot(times, curve, linewidth=1, label=label)
    plt.plot(times, total, 'k-', linewidth=2, label='total')

    if logy:
        plt.yscale('log')

    plt.xlabel("Time after bounce (s)")
    plt.ylabel("Expected rate (s⁻¹)")
    plt.title(title_prefix if title_prefix else "Expected interaction rate")
    plt.grid(True, alpha=0.3)
    plt.legend(fontsize=7, ncol=2)
    plt.tight_layout()

    os.makedirs(outpath, exist_ok=True)
    base, ext = os.path.splitext(filename)
    suffix = "_log" if logy else "_linear"
    out_file = os.path.join(outpath, f"{base}{suffix}{ext}")

    plt.savefig(out_file, dpi=200)
    plt.close()
    print(f"Saved rate vs time ({'log' if logy else 'linear'}) to {out_file}")
    return out_file


def plot_event_energy(frame, outpath, filename="event_energy.png", title_prefix="",
                      bins=60, particle=None):
    """Histogram energies from a table of ``workflows.events_to_frame``.

    Parameters
    ----------
    frame : pandas.DataFrame
        Particle table
    outpath : str
        Directory path for output
    filename : str
        Output image file name
    title_prefix : str
        Optional prefix for plot title
    bins : int
        Number of histogram bins
    particle : int, optional
        Particle index within the event to histogram; the incident neutrino
        (index 0) by default
    """
    index = 0 if particle is None else particle
    selected = frame[frame['particle'] == index]
    if selected.empty:
        print(f"Warning: no particles with index {index}, skipping plot {filename}")
        return None

    plt.figure(figsize=(8, 6))
    for label, rows in selected.groupby('label', sort=False):
        plt.hist(rows['energy'], bins=bins, histtype='step', linewidth=1.5, label=label)

    plt.xlabel("Energy (MeV)")
    plt.ylabel("Events / bin")
    plt.title(title_prefix if title_prefix else f"Energy of particle {index}")
    plt.grid(True, alpha=0.3)
    plt.legend(fontsize=7)
    plt.tight_layout()

    os.makedirs(outpath, exist_ok=True)
    out_file = os.path.join(outpath, filename)
    plt.savefig(out_file, dpi=200)
    plt.close()
    print(f"Saved event energy histogram to {out_file}")
    return out_file
