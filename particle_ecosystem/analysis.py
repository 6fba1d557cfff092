"""
Post-run analysis.

``SnapshotRecorder`` is another snapshot consumer, like the renderer: the
host hands it every snapshot and it keeps a sampled history plus one
lineage row per entity ever seen.  ``Analyzer`` turns that into CSV exports
(pandas) and charts (matplotlib).
"""

import os

import matplotlib.pyplot as plt
import pandas as pd


class SnapshotRecorder:
    """Samples one history row every ``interval`` ticks."""

    def __init__(self, categories: list, interval: int = 10) -> None:
        self.categories: list = list(categories)
        self.interval: int = max(1, int(interval))
        self.history: list = []
        self.entities: dict = {}     # id -> lineage row
        self.last_tick: int = 0

    def record(self, snapshot) -> bool:
        """Track lineage for ``snapshot``; append a history row on sampled ticks."""
        for ev in snapshot.entities:
            row = self.entities.get(ev.id)
            if row is None:
                self.entities[ev.id] = {
                    "entity_id":   ev.id,
                    "category":    ev.category,
                    "generation":  ev.generation,
                    "parent_id":   ev.parent_id,
                    "mutant":      ev.mutant,
                    "genome":      "-".join(str(t) for t in ev.genome),
                    "first_tick":  snapshot.tick,
                    "last_tick":   snapshot.tick,
                    "lifespan":    ev.lifespan,
                    "peak_energy": ev.energy,
                    "final_age":   ev.age,
                }
            else:
                row["last_tick"] = snapshot.tick
                row["peak_energy"] = max(row["peak_energy"], ev.energy)
                row["final_age"] = ev.age
        self.last_tick = snapshot.tick

        if snapshot.tick % self.interval != 0:
            return False
        counts = snapshot.category_counts()
        diag = snapshot.diagnostics
        row = {
            "tick":        snapshot.tick,
            "time":        snapshot.time,
            "population":  snapshot.population,
            "connections": len(snapshot.connections),
            "max_generation": max((ev.generation for ev in snapshot.entities), default=0),
            "mutants":     sum(1 for ev in snapshot.entities if ev.mutant),
        }
        for cat in self.categories:
            row[f"n_{cat}"] = counts.get(cat, 0)
        row.update(diag._asdict())
        self.history.append(row)
        return True

    def clear(self) -> None:
        self.history = []
        self.entities = {}
        self.last_tick = 0


class Analyzer:
    """
    Exports and charts for one recorded run.

    Files written to ``output_dir``
    -------------------------------
    population_history.csv   one row per sampled tick
    entity_summary.csv       one row per entity ever observed
    population_over_time.png stacked area chart per category
    lineage_timeline.png     max generation and mutant count
    saturation.png           cumulative refused replications / spawns
    """

    def __init__(self, recorder: SnapshotRecorder, theme=None,
                 output_dir: str = ".") -> None:
        self.recorder   = recorder
        self.theme      = theme
        self.output_dir = output_dir
        self.history    = pd.DataFrame(recorder.history)
        self.written: list = []

    def run(self, show: bool = False) -> list:
        """Export CSVs and charts.  Returns the written paths."""
        os.makedirs(self.output_dir, exist_ok=True)
        print("\n[Analyzer] Exporting CSVs ...")
        self._export_population_history_csv()
        self._export_entity_summary_csv()

        if self.history.empty:
            print("[Analyzer] No history recorded; skipping charts.")
            return self.written
        print("[Analyzer] Generating charts ...")
        figs = [
            self._plot_stacked_population(),
            self._plot_lineage_timeline(),
            self._plot_saturation(),
        ]
        if show:
            print("[Analyzer] Done. Close chart windows to exit.")
            plt.show()
        for fig in figs:
            plt.close(fig)
        return self.written

    # ── CSV exports ───────────────────────────────────────────────────────────
    def _path(self, name: str) -> str:
        path = os.path.join(self.output_dir, name)
        self.written.append(path)
        print(f"  {name}")
        return path

    def _export_population_history_csv(self) -> None:
        self.history.to_csv(self._path("population_history.csv"), index=False)

    def _export_entity_summary_csv(self) -> None:
        rows = sorted(self.recorder.entities.values(), key=lambda r: r["entity_id"])
        df = pd.DataFrame(rows, columns=[
            "entity_id", "category", "generation", "parent_id", "mutant", "genome",
            "first_tick", "last_tick", "lifespan", "peak_energy", "final_age",
        ])
        df["alive_at_end"] = df["last_tick"] == self.recorder.last_tick
        df.to_csv(self._path("entity_summary.csv"), index=False)

    # ── Internal helpers ──────────────────────────────────────────────────────
    def _norm_color(self, rgb: tuple) -> tuple:
        return tuple(c / 255.0 for c in rgb)

    def _color_for(self, category):
        if self.theme is None:
            return None
        return self._norm_color(self.theme.color_for(category))

    # ── Charts ────────────────────────────────────────────────────────────────
    def _plot_stacked_population(self):
        """Stacked area chart of population per category over time."""
        ticks = self.history["tick"]
        cats = self.recorder.categories
        series = [self.history[f"n_{c}"] for c in cats]
        colors = [self._color_for(c) for c in cats]

        fig, ax = plt.subplots(figsize=(12, 5))
        if self.theme is None:
            ax.stackplot(ticks, *series, labels=[str(c) for c in cats], alpha=0.82)
        else:
            ax.stackplot(ticks, *series, labels=[str(c) for c in cats],
                         colors=colors, alpha=0.82)
        ax.set(xlabel="Tick", ylabel="Population",
               title="Population by Category Over Time (Stacked Area)")
        ax.legend(loc="upper right", fontsize=7, ncol=4)
        fig.tight_layout()
        fig.savefig(self._path("population_over_time.png"), dpi=120)
        return fig

    def _plot_lineage_timeline(self):
        """Deepest live generation and mutant count over time."""
        ticks = self.history["tick"]
        fig, (ax_gen, ax_mut) = plt.subplots(2, 1, figsize=(12, 6), sharex=True)
        ax_gen.plot(ticks, self.history["max_generation"], color="#3498db", linewidth=1.5)
        ax_gen.set_ylabel("Max generation")
        ax_gen.grid(True, alpha=0.3)
        ax_mut.plot(ticks, self.history["mutants"], color="#9b59b6", linewidth=1.5)
        ax_mut.fill_between(ticks, self.history["mutants"], alpha=0.2, color="#9b59b6")
        ax_mut.set(xlabel="Tick", ylabel="Live mutants")
        ax_mut.grid(True, alpha=0.3)
        fig.suptitle("Lineage Depth and Mutants Over Time", fontsize=12)
        fig.tight_layout()
        fig.savefig(self._path("lineage_timeline.png"), dpi=120)
        return fig

    def _plot_saturation(self):
        """Cumulative refusals at the population cap."""
        ticks = self.history["tick"]
        fig, ax = plt.subplots(figsize=(12, 4))
        ax.plot(ticks, self.history["replication_refused"], color="#e74c3c",
                linewidth=1.5, label="replication refused")
        ax.plot(ticks, self.history["spawn_refused"], color="#e67e22",
                linewidth=1.5, label="spawn refused")
        ax.set(xlabel="Tick", ylabel="Cumulative count",
               title="Population Cap Saturation")
        ax.legend(fontsize=8)
        ax.grid(True, alpha=0.3)
        fig.tight_layout()
        fig.savefig(self._path("saturation.png"), dpi=120)
        return fig
