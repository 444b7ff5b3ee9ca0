"""Plotting functions for proposed LNA paths."""

from __future__ import annotations

import os
from typing import Sequence

import matplotlib.pyplot as plt
import numpy as np

from lna.path_history import LNAPath

RESULTS_DIR = "results/lna"


def plot_lna_path(
    path: LNAPath,
    event_names: Sequence[str],
    save_dir: str = RESULTS_DIR,
) -> str:
    """Plot cumulative incidence per event.

    Parameters
    ----------
    path : LNAPath
    event_names : sequence of str
        One name per event, in path column order.
    save_dir : str
        Directory to save the figure.

    Returns
    -------
    str
        Path of the saved figure.
    """
    fig, ax = plt.subplots(figsize=(10, 5))
    colors = plt.cm.tab10(np.linspace(0, 0.9, len(event_names)))

    for e, (name, color) in enumerate(zip(event_names, colors)):
        ax.step(path.times, path.incidence[:, e], where='post', color=color, linewidth=1.5, label=name)

    ax.set_xlabel("Time")
    ax.set_ylabel("Cumulative incidence")
    ax.set_title("LNA path (natural scale)")
    ax.grid(True, alpha=0.3)
    ax.legend(fontsize=9)

    plt.tight_layout()
    out = os.path.join(save_dir, "lna_incidence.png")
    plt.savefig(out, dpi=150)
    plt.close(fig)
    return out


def plot_compartments(
    t: np.ndarray,
    volumes: np.ndarray,
    compartment_names: Sequence[str],
    save_dir: str = RESULTS_DIR,
) -> str:
    """One subplot per compartment showing its volume over time.

    Parameters
    ----------
    t : np.ndarray, shape (n_times,)
    volumes : np.ndarray, shape (n_times, n_comps)
        From LNAPath.compartment_volumes().
    compartment_names : sequence of str
    save_dir : str

    Returns
    -------
    str
        Path of the saved figure.
    """
    n_comps = len(compartment_names)
    fig, axes = plt.subplots(n_comps, 1, figsize=(10, 2.5 * n_comps), sharex=True, squeeze=False)

    for i, (ax, name) in enumerate(zip(axes[:, 0], compartment_names)):
        ax.plot(t, volumes[:, i], color='steelblue', linewidth=1.2)
        ax.set_ylabel(name)
        ax.grid(True, alpha=0.3)

    axes[-1, 0].set_xlabel("Time")
    fig.suptitle("Compartment volumes implied by the LNA path", fontsize=13)
    plt.tight_layout()
    out = os.path.join(save_dir, "lna_compartments.png")
    plt.savefig(out, dpi=150)
    plt.close(fig)
    return out
