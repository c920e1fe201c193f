"""
Visualization module for position projections and earnings charts.
"""

import logging
from typing import Sequence

import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
from matplotlib.gridspec import GridSpec
import seaborn as sns
import pandas as pd

from ..analysis.earnings import TokenTotal


class Visualizer:
    """Handles visualization of CL projections and earnings."""

    def __init__(self):
        # Set professional style
        plt.style.use('seaborn-v0_8-whitegrid')

        # Define color palette
        self.colors = {
            'primary': '#1f77b4',      # Blue
            'secondary': '#ff7f0e',    # Orange
            'success': '#2ca02c',      # Green
            'danger': '#d62728',       # Red
            'dark': '#2c3e50',         # Dark blue
            'position': '#9467bd',     # Purple
        }

        plt.rcParams['font.family'] = 'sans-serif'
        plt.rcParams['font.sans-serif'] = ['Arial', 'DejaVu Sans']
        plt.rcParams['font.size'] = 10
        self.logger = logging.getLogger(__name__)

    def plot_position_value_chart(
        self,
        scenarios: pd.DataFrame,
        entry_price: float,
        range_lower: float,
        range_upper: float,
        output_path: str
    ) -> str:
        """Plot LP value against hold value and IL across a price grid."""
        fig = plt.figure(figsize=(12, 8))
        gs = GridSpec(2, 1, height_ratios=[2, 1], hspace=0.3)

        ax_value = fig.add_subplot(gs[0])
        ax_value.plot(scenarios['price'], scenarios['lp_value'], color=self.colors['position'],
                      linewidth=2.5, label='LP Position')
        ax_value.plot(scenarios['price'], scenarios['held_value'], color=self.colors['secondary'],
                      linewidth=2, linestyle='--', label='Hold')

        ax_il = fig.add_subplot(gs[1], sharex=ax_value)
        ax_il.fill_between(scenarios['price'], scenarios['il_pct'], 0,
                           color=self.colors['danger'], alpha=0.3)
        ax_il.plot(scenarios['price'], scenarios['il_pct'], color=self.colors['danger'], linewidth=2)

        for ax in (ax_value, ax_il):
            # Shade the active range
            ax.axvspan(range_lower, range_upper, alpha=0.1, color=self.colors['position'])
            ax.axvline(x=entry_price, color=self.colors['success'], linestyle='-',
                       linewidth=2, alpha=0.9)
            ax.grid(True, alpha=0.3, linestyle='-', linewidth=0.5)

        ax_value.set_ylabel('Value (quote)', fontsize=12, fontweight='bold')
        ax_value.set_title('Position Value vs Holding', fontsize=16, fontweight='bold', pad=20)
        ax_value.legend(loc='upper left', frameon=True, fontsize=11)
        ax_il.set_xlabel('Price', fontsize=12, fontweight='bold')
        ax_il.set_ylabel('Impermanent Loss (%)', fontsize=12, fontweight='bold')

        plt.savefig(output_path, dpi=150, bbox_inches='tight', facecolor='white')
        plt.close(fig)
        self.logger.info(f"Saved position value chart to {output_path}")
        return output_path

    def plot_earnings_by_token(
        self,
        totals: Sequence[TokenTotal],
        output_path: str
    ) -> str:
        """Bar chart of realized earnings per reward token in USD."""
        frame = pd.DataFrame(
            [{'token': t.token, 'value': t.value} for t in totals],
            columns=['token', 'value']
        )

        fig, ax = plt.subplots(figsize=(10, 6))
        if frame.empty:
            ax.text(0.5, 0.5, 'No earnings recorded', ha='center', va='center',
                    fontsize=14, color=self.colors['dark'])
            ax.axis('off')
        else:
            sns.barplot(data=frame, x='token', y='value', color=self.colors['primary'], ax=ax)
            ax.set_xlabel('Reward Token', fontsize=12, fontweight='bold')
            ax.set_ylabel('Value (USD)', fontsize=12, fontweight='bold')
            ax.set_title('Earnings by Token', fontsize=16, fontweight='bold', pad=20)

        plt.savefig(output_path, dpi=150, bbox_inches='tight', facecolor='white')
        plt.close(fig)
        self.logger.info(f"Saved earnings chart to {output_path}")
        return output_path
