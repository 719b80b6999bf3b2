"""
Timeline Visualization

This module renders a recorded scenario trace: frame positions between
sender and receiver over time, and a sequence x time map of frame states.
"""

import os
import sys
from typing import Optional, Tuple

import numpy as np
import pandas as pd
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
import matplotlib.colors as mcolors
import seaborn as sns

# Add parent to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import PLOTS_DIR, TRANSIT_DISTANCE
from src.arq.frame import FrameState


# Colors follow the classic applet legend
STATE_COLORS = {
    FrameState.UNSENT.name: '#ffffff',
    FrameState.OUTBOUND.name: '#808080',
    FrameState.AT_RECEIVER.name: '#f2d600',
    FrameState.RETURN.name: '#2ca02c',
    FrameState.ACKNOWLEDGED.name: '#98df8a',
    FrameState.LOST.name: '#d62728',
}


class TimelinePlot:
    """
    Renders a scenario trace to PNG files.

    The trace is the DataFrame produced by ``ScenarioRunner.to_dataframe``.
    """

    def __init__(self, trace: pd.DataFrame, distance: int = TRANSIT_DISTANCE):
        """
        Initialize timeline plot.

        Args:
            trace: Per-frame samples (time, sequence, state, progress, ...)
            distance: Transit distance between sender and receiver
        """
        if trace.empty:
            raise ValueError("Trace is empty; run a scenario first")
        self.trace = trace
        self.distance = distance

    def _positions(self) -> pd.DataFrame:
        """Distance from the sender for every sample; NaN once off the wire."""
        df = self.trace.copy()
        state = df['state']
        position = np.where(
            state == FrameState.OUTBOUND.name, df['progress'],
            np.where(state == FrameState.RETURN.name, self.distance - df['progress'], np.nan)
        )
        df['position'] = position.astype(float)
        return df

    def _state_matrix(self) -> Tuple[np.ndarray, list, list]:
        """Sequence x time matrix of state codes."""
        codes = {name: i for i, name in enumerate(STATE_COLORS)}
        pivot = self.trace.pivot(index='sequence', columns='time', values='state')
        matrix = pivot.apply(lambda col: col.map(codes)).fillna(
            codes[FrameState.UNSENT.name]
        ).to_numpy(dtype=float)
        return matrix, list(pivot.index), list(pivot.columns)

    def plot_progress(
        self,
        output_file: Optional[str] = None,
        title: str = "Go-Back-N Frame Timeline",
        figsize: Tuple[int, int] = (12, 7)
    ) -> str:
        """
        Plot frame positions over time with the window pointers.

        Args:
            output_file: Output PNG path
            title: Plot title
            figsize: Figure size

        Returns:
            Path to saved file
        """
        df = self._positions()
        fig, (ax, ax_win) = plt.subplots(
            2, 1, figsize=figsize, sharex=True,
            gridspec_kw={'height_ratios': [3, 1]}
        )

        palette = sns.color_palette('tab20', n_colors=max(df['sequence'].nunique(), 1))
        for color, (seq, group) in zip(palette, df.groupby('sequence')):
            ax.plot(group['time'], group['position'], color=color,
                    linewidth=1.5, label=f"#{seq}")
            lost = group[group['state'] == FrameState.LOST.name]
            if not lost.empty:
                first = lost.iloc[0]
                ax.scatter([first['time']], [self.distance / 2], marker='x',
                           color=STATE_COLORS[FrameState.LOST.name], zorder=3)

        ax.set_ylim(self.distance * 1.05, -self.distance * 0.05)
        ax.set_yticks([0, self.distance])
        ax.set_yticklabels(['Sender', 'Receiver'])
        ax.set_title(title, fontsize=14, fontweight='bold')
        ax.legend(loc='upper right', ncol=2, fontsize=8, title='Frame')
        ax.grid(True, alpha=0.3)

        window = df.groupby('time')[['base', 'next_seq']].first()
        ax_win.step(window.index, window['base'], where='post', label='base')
        ax_win.step(window.index, window['next_seq'], where='post', label='next')
        ax_win.set_xlabel('Time (s)', fontsize=12)
        ax_win.set_ylabel('Sequence', fontsize=12)
        ax_win.legend(loc='upper left', fontsize=8)
        ax_win.grid(True, alpha=0.3)

        plt.tight_layout()

        if output_file is None:
            os.makedirs(PLOTS_DIR, exist_ok=True)
            output_file = os.path.join(PLOTS_DIR, 'frame_timeline.png')

        plt.savefig(output_file, dpi=150, bbox_inches='tight')
        plt.close(fig)

        return output_file

    def plot_state_map(
        self,
        output_file: Optional[str] = None,
        title: str = "Frame States over Time",
        figsize: Tuple[int, int] = (14, 5)
    ) -> str:
        """
        Plot a sequence x time heatmap of frame states.

        Returns:
            Path to saved file
        """
        matrix, sequences, times = self._state_matrix()
        cmap = mcolors.ListedColormap(list(STATE_COLORS.values()))

        fig, ax = plt.subplots(figsize=figsize)
        step = max(len(times) // 20, 1)
        sns.heatmap(
            matrix,
            cmap=cmap,
            vmin=-0.5,
            vmax=len(STATE_COLORS) - 0.5,
            xticklabels=[f"{t:.1f}" if i % step == 0 else '' for i, t in enumerate(times)],
            yticklabels=sequences,
            linewidths=0,
            ax=ax,
            cbar_kws={'ticks': list(range(len(STATE_COLORS)))}
        )
        ax.collections[0].colorbar.set_ticklabels(list(STATE_COLORS))

        ax.set_xlabel('Time (s)', fontsize=12)
        ax.set_ylabel('Frame', fontsize=12)
        ax.set_title(title, fontsize=14, fontweight='bold')

        plt.tight_layout()

        if output_file is None:
            os.makedirs(PLOTS_DIR, exist_ok=True)
            output_file = os.path.join(PLOTS_DIR, 'frame_states.png')

        plt.savefig(output_file, dpi=150, bbox_inches='tight')
        plt.close(fig)

        return output_file
