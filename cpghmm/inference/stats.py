"""CpG island statistics and QC plotting."""

from typing import Iterable

import numpy as np
import pandas as pd

from cpghmm.inference.segmenter import IslandRecord


class IslandStats:
    """Collects statistics over emitted islands."""

    def __init__(self):
        self.lengths = []
        self.cg_contents = []
        self.oe_ratios = []
        self.sequence_length = 0     # symbols decoded (full windows only)
        self.windows_decoded = 0
        self.candidates_rejected = 0

    def add_records(self, records: Iterable[IslandRecord]):
        for record in records:
            self.lengths.append(record.length)
            self.cg_contents.append(record.cg_content)
            self.oe_ratios.append(record.oe_ratio)

    def to_dataframe(self) -> pd.DataFrame:
        return pd.DataFrame({
            'length': np.array(self.lengths, dtype=np.int64),
            'cg_content': np.array(self.cg_contents, dtype=float),
            'oe_ratio': np.array(self.oe_ratios, dtype=float),
        })

    def get_summary(self) -> dict:
        """Generate summary statistics."""
        summary = {
            'total_islands': len(self.lengths),
            'windows_decoded': self.windows_decoded,
            'sequence_length': self.sequence_length,
            'candidates_rejected': self.candidates_rejected,
        }

        if self.lengths:
            df = self.to_dataframe()
            total_bp = int(df['length'].sum())
            summary['island_bp'] = total_bp
            summary['pct_sequence_in_islands'] = (
                100 * total_bp / self.sequence_length if self.sequence_length > 0 else 0
            )
            summary['length_median'] = df['length'].median()
            summary['length_mean'] = df['length'].mean()
            summary['length_std'] = df['length'].std(ddof=0)
            summary['length_min'] = int(df['length'].min())
            summary['length_max'] = int(df['length'].max())
            summary['cg_content_median'] = df['cg_content'].median()
            summary['cg_content_mean'] = df['cg_content'].mean()
            summary['oe_ratio_median'] = df['oe_ratio'].median()
            summary['oe_ratio_mean'] = df['oe_ratio'].mean()

        return summary

    def write_summary(self, filepath: str):
        """Write summary statistics to a text file."""
        summary = self.get_summary()

        with open(filepath, 'w') as f:
            f.write("CpGHMM Island Statistics\n")
            f.write("=" * 50 + "\n\n")

            f.write("Input\n")
            f.write("-" * 30 + "\n")
            f.write(f"Windows decoded:            {summary['windows_decoded']:,}\n")
            f.write(f"Symbols decoded:            {summary['sequence_length']:,}\n")
            f.write(f"Candidates rejected:        {summary['candidates_rejected']:,}\n")
            f.write("\n")

            f.write("Islands\n")
            f.write("-" * 30 + "\n")
            f.write(f"Total islands:              {summary['total_islands']:,}\n")
            if 'island_bp' in summary:
                f.write(f"Bases in islands:           {summary['island_bp']:,} ({summary['pct_sequence_in_islands']:.2f}%)\n")
                f.write(f"Length (median):            {summary['length_median']:.0f} bp\n")
                f.write(f"Length (mean ± std):        {summary['length_mean']:.1f} ± {summary['length_std']:.1f} bp\n")
                f.write(f"Length (range):             {summary['length_min']} - {summary['length_max']} bp\n")
                f.write(f"CG content (median):        {summary['cg_content_median']:.3f}\n")
                f.write(f"O/E ratio (median):         {summary['oe_ratio_median']:.3f}\n")

    def plot_distributions(self, output_prefix: str) -> str:
        """Write length / CG content / O/E ratio histograms to <prefix>_stats.pdf."""
        import matplotlib
        matplotlib.use('Agg')  # Non-interactive backend
        import matplotlib.pyplot as plt
        from matplotlib.backends.backend_pdf import PdfPages

        pdf_path = f"{output_prefix}_stats.pdf"

        with PdfPages(pdf_path) as pdf:
            fig, axes = plt.subplots(2, 2, figsize=(10, 8))
            fig.suptitle('CpGHMM Island Statistics', fontsize=14, fontweight='bold')

            panels = [
                (axes[0, 0], self.lengths, 'Island Length (bp)', 'steelblue'),
                (axes[0, 1], self.cg_contents, 'CG Content', 'forestgreen'),
                (axes[1, 0], self.oe_ratios, 'Observed/Expected CpG', 'coral'),
            ]
            for ax, values, label, color in panels:
                if values:
                    data = np.array(values)
                    ax.hist(data, bins=50, color=color, edgecolor='white', alpha=0.8)
                    ax.axvline(np.median(data), color='red', linestyle='--',
                               label=f'Median: {np.median(data):.2f}')
                    ax.set_xlabel(label)
                    ax.set_ylabel('Count')
                    ax.legend()
                else:
                    ax.text(0.5, 0.5, 'No islands', ha='center', va='center',
                            transform=ax.transAxes)
                ax.set_title(f'{label} Distribution')

            ax = axes[1, 1]
            if self.lengths:
                ax.scatter(self.cg_contents, self.oe_ratios, s=6, alpha=0.5, color='purple')
                ax.axvline(0.5, color='grey', linestyle=':')
                ax.axhline(0.6, color='grey', linestyle=':')
                ax.set_xlabel('CG Content')
                ax.set_ylabel('Observed/Expected CpG')
            else:
                ax.text(0.5, 0.5, 'No islands', ha='center', va='center',
                        transform=ax.transAxes)
            ax.set_title('CG Content vs O/E Ratio')

            plt.tight_layout()
            pdf.savefig(fig)
            plt.close(fig)

        return pdf_path
