import logging
from pathlib import Path
from typing import List, Optional

import matplotlib.pyplot as plt
import numpy as np

from models import RunReport

logger = logging.getLogger(__name__)


def _series(values: List[Optional[float]]) -> np.ndarray:
    return np.array([np.nan if v is None else v for v in values], dtype=float)


def plot_sweep_summary(
    reports: List[RunReport],
    save_path: Optional[Path] = None,
    show_plot: bool = True
) -> None:
    """
    Plot per-run averages against node count.

    Absent values (no traffic observed) are drawn as gaps rather than zeros.

    Args:
        reports: Sweep results in node-count order
        save_path: Path to save the figure (optional)
        show_plot: Whether to display the plot interactively

    Raises:
        ValueError: If there are no reports to plot
    """
    if not reports:
        raise ValueError("No results to plot. Run the sweep first.")

    node_counts = [r.node_count for r in reports]
    rx_bitrate = _series([r.summary.mean_rx_bitrate_kbps for r in reports])
    tx_bitrate = _series([r.summary.mean_tx_bitrate_kbps for r in reports])
    loss_ratio = _series([r.summary.mean_loss_ratio_percent for r in reports])
    rx_packets = [r.summary.rx_packets for r in reports]
    tx_packets = [r.summary.tx_packets for r in reports]

    fig, axes = plt.subplots(1, 3, figsize=(15, 5))
    fig.suptitle('Ad-hoc Echo Sweep', fontsize=14, fontweight='bold')

    ax1 = axes[0]
    ax1.plot(node_counts, tx_bitrate, 'b-o', linewidth=2, markersize=6, label='TX')
    ax1.plot(node_counts, rx_bitrate, 'g-s', linewidth=2, markersize=6, label='RX')
    ax1.set_xlabel('Nodes', fontsize=11)
    ax1.set_ylabel('Mean bitrate (kbit/s)', fontsize=11)
    ax1.set_title('Per-flow Bitrate', fontsize=12)
    ax1.legend()
    ax1.grid(True, alpha=0.3)

    ax2 = axes[1]
    ax2.plot(node_counts, loss_ratio, 'r-D', linewidth=2, markersize=6)
    ax2.set_ylim(0, 105)
    ax2.set_xlabel('Nodes', fontsize=11)
    ax2.set_ylabel('Mean loss ratio (%)', fontsize=11)
    ax2.set_title('Packet Loss', fontsize=12)
    ax2.grid(True, alpha=0.3)

    ax3 = axes[2]
    x = np.arange(len(node_counts))
    width = 0.4
    ax3.bar(x - width / 2, tx_packets, width, label='TX packets', color='steelblue', alpha=0.8)
    ax3.bar(x + width / 2, rx_packets, width, label='RX packets', color='#27ae60', alpha=0.8)
    ax3.set_xticks(x)
    ax3.set_xticklabels([str(n) for n in node_counts])
    ax3.set_xlabel('Nodes', fontsize=11)
    ax3.set_ylabel('Packets', fontsize=11)
    ax3.set_title('Packets per Run', fontsize=12)
    ax3.legend()
    ax3.grid(True, alpha=0.3, axis='y')

    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=300, bbox_inches='tight')
        logger.info("Plot saved to: %s", save_path)

    if show_plot:
        plt.show()
    plt.close(fig)
