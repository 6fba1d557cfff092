"""
Particle Ecosystem demo
=======================
Runs one themed widget in a Pygame window.

Controls:
    SPACE: Pause / Resume
    R: Reseed (dispose + init)
    Q: Quit and generate analysis
    Mouse: Hold the left button to spawn particles or paint forces

Run:
    python -m particle_ecosystem [virus|emotion|star_forge|circus|dream] [--seed N]
"""

import argparse
import logging
import sys

import pygame

from .analysis import Analyzer, SnapshotRecorder
from .coupler import PointerEvent
from .engine import SimulationEngine
from .errors import EngineError
from .renderer import render
from .themes import THEMES, get_theme

# ── Demo configuration ────────────────────────────────────────────────────────
HOST_CONFIG = {
    "window_width": 900,
    "window_height": 630,
    "topbar_height": 30,
    "fps": 60,
    "output_dir": "analysis_output",
}

# Stand-in for the profile statistics a portfolio page would fetch.
DEMO_STATS = {
    "commits_per_day": 3.2,
    "total_stars": 240,
    "total_forks": 48,
    "open_issues": 12,
    "pull_requests": 5,
    "followers": 85,
    "streak": 21,
    "years_active": 4,
    "languages": {"Python": 52000, "TypeScript": 31000, "Go": 9000,
                  "Haskell": 2000, "SQL": 1500},
    "repositories": [
        {"stars": 120, "forks": 20, "open_issues": 4},
        {"stars": 60, "forks": 12, "open_issues": 3},
        {"stars": 30, "forks": 8, "open_issues": 2},
        {"stars": 18, "forks": 5, "open_issues": 1},
        {"stars": 12, "forks": 3, "open_issues": 2},
    ],
}


class DemoHost:
    """
    Owns the window, the frame clock and the engine lifetime.

    The engine never schedules itself: each frame the host forwards pointer
    events, calls ``tick`` once, renders the snapshot and records it.
    """

    def __init__(self, theme, config: dict, rng_seed=None) -> None:
        pygame.init()
        pygame.font.init()

        self.theme = theme
        self.config = config
        self.rng_seed = rng_seed
        self.paused: bool = False
        self.quit: bool = False

        W = config["window_width"]
        H = config["window_height"]
        tb = config["topbar_height"]
        self.screen = pygame.display.set_mode((W, H))
        pygame.display.set_caption(f"Particle Ecosystem: {theme.name}")
        self.clock = pygame.time.Clock()
        self.field = self.screen.subsurface(pygame.Rect(0, tb, W, H - tb))
        self.topbar_rect = pygame.Rect(0, 0, W, tb)

        self.font_m = pygame.font.SysFont("consolas", 14, bold=True)
        self.TOPBAR_BG = (22, 22, 38)
        self.TEXT      = (200, 210, 220)

        self.engine = SimulationEngine()
        self.recorder: SnapshotRecorder = None
        self._start()

    def _start(self) -> None:
        w, h = self.field.get_size()
        cfg = self.theme.engine_config(w, h, stats=DEMO_STATS, rng_seed=self.rng_seed)
        self.engine.init(cfg, self.theme.seed_from_stats(DEMO_STATS))
        self.recorder = SnapshotRecorder(self.theme.categories, cfg["history_interval"])
        self.recorder.record(self.engine.get_snapshot())

    # ── Main loop ─────────────────────────────────────────────────────────────
    def run(self) -> None:
        """Pygame main event loop.  Runs until the user quits."""
        while True:
            dt = self.clock.tick(self.config["fps"]) / 1000.0
            self._handle_events()
            if self.quit or not self.engine.running:
                break
            if not self.paused:
                snapshot = self.engine.tick(dt)
                self.recorder.record(snapshot)
            self._render()

        self.engine.dispose()
        pygame.quit()

    def _handle_events(self) -> None:
        tb = self.config["topbar_height"]
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                self.quit = True
            elif event.type == pygame.KEYDOWN:
                if event.key == pygame.K_q:
                    self.quit = True
                elif event.key == pygame.K_SPACE:
                    self.paused = not self.paused
                elif event.key == pygame.K_r:
                    self.engine.dispose()
                    self._start()
            elif event.type in (pygame.MOUSEMOTION, pygame.MOUSEBUTTONDOWN):
                if self.paused or event.pos[1] < tb:
                    continue
                pressed = (event.type == pygame.MOUSEBUTTONDOWN and event.button == 1) or \
                          (event.type == pygame.MOUSEMOTION and event.buttons[0])
                self.engine.handle_input(
                    PointerEvent(event.pos[0], event.pos[1] - tb, pressed=bool(pressed)))

    # ── Rendering ─────────────────────────────────────────────────────────────
    def _render(self) -> None:
        render(self.field, self.engine.get_snapshot(), self.theme)
        self._draw_topbar()
        pygame.display.flip()

    def _draw_topbar(self) -> None:
        pygame.draw.rect(self.screen, self.TOPBAR_BG, self.topbar_rect)
        snap = self.engine.get_snapshot()
        diag = snap.diagnostics
        state = "[PAUSED]" if self.paused else "[RUNNING]"
        text = (f"{self.theme.name}  |  "
                f"Tick: {snap.tick:,}  |  "
                f"Pop: {snap.population}/{self.engine.config['population_cap']}  |  "
                f"Links: {len(snap.connections)}  |  "
                f"Born: {diag.births}  Died: {diag.deaths}  |  "
                f"Refused: {diag.saturation}  |  "
                f"{state}")
        surf = self.font_m.render(text, True, self.TEXT)
        tb = self.config["topbar_height"]
        self.screen.blit(surf, (8, (tb - surf.get_height()) // 2))


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(prog="particle_ecosystem", description=__doc__,
                                     formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("theme", nargs="?", default="virus", choices=sorted(THEMES))
    parser.add_argument("--seed", type=int, default=None, help="RNG seed for a reproducible run")
    parser.add_argument("--no-analysis", action="store_true",
                        help="skip the post-run CSV / chart export")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    try:
        host = DemoHost(get_theme(args.theme), HOST_CONFIG, rng_seed=args.seed)
    except EngineError as exc:
        print(f"ERROR: {exc}")
        return 1
    host.run()

    if not args.no_analysis:
        print("\nSimulation ended.  Running post-simulation analysis ...")
        Analyzer(host.recorder, host.theme, HOST_CONFIG["output_dir"]).run(show=True)
    return 0


if __name__ == "__main__":
    sys.exit(main())
