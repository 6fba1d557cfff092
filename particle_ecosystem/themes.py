"""
Theme adapters.

Each portfolio widget is a parameter set for the one engine: a category list,
a compatibility table, a trait alphabet, glyph colours/shapes and a mapping
from profile statistics to the initial population.  Profile statistics are
an opaque mapping of numbers; missing keys count as zero.

Recognised stats keys: ``commits_per_day``, ``total_stars``, ``total_forks``,
``open_issues``, ``pull_requests``, ``followers``, ``streak``,
``years_active``, ``languages`` ({name: bytes}) and ``repositories``
([{"stars", "forks", "open_issues"}]).
"""

import math

from .config import build_config
from .errors import ConfigurationError

# ── Shared palette ────────────────────────────────────────────────────────────
BACKGROUND = (10, 10, 20)
LINK_COLOR = (70, 78, 104)
MUTANT_COLOR = (139, 92, 246)       # "mutated virus" purple

SHAPES = ["circle", "triangle", "square", "diamond", "pentagon", "hexagon"]


def _num(stats: dict, key: str) -> float:
    value = stats.get(key, 0) or 0
    try:
        value = float(value)
    except (TypeError, ValueError):
        return 0.0
    return value if math.isfinite(value) and value > 0 else 0.0


class Theme:
    """
    Configuration/strategy object for one widget.

    ``seeder`` maps stats → {category: count}; ``feeder`` (optional) maps
    stats and bounds → feed point dicts.
    """

    def __init__(self, name: str, categories: list, compatibility: dict,
                 colors: dict, shapes: dict, seeder, trait_alphabet: list = (),
                 initial_genomes: dict = None, trait_effects: dict = None,
                 feeder=None, asymmetric: bool = False, overrides: dict = None,
                 mutant_color: tuple = MUTANT_COLOR, background: tuple = BACKGROUND,
                 link_color: tuple = LINK_COLOR, description: str = "") -> None:
        self.name = name
        self.categories = list(categories)
        self.compatibility = compatibility
        self.colors = dict(colors)
        self.shapes = dict(shapes)
        self.trait_alphabet = list(trait_alphabet)
        self.initial_genomes = dict(initial_genomes or {})
        self.trait_effects = dict(trait_effects or {})
        self.asymmetric = asymmetric
        self.overrides = dict(overrides or {})
        self.mutant_color = mutant_color
        self.background = background
        self.link_color = link_color
        self.description = description
        self._seeder = seeder
        self._feeder = feeder

    def color_for(self, category) -> tuple:
        return self.colors.get(category, (200, 200, 200))

    def shape_for(self, category) -> str:
        return self.shapes.get(category, "circle")

    def seed_from_stats(self, stats: dict) -> dict:
        counts = self._seeder(dict(stats or {}))
        return {cat: max(0, int(n)) for cat, n in counts.items() if n > 0}

    def feed_points_from_stats(self, stats: dict, width: float, height: float) -> list:
        if self._feeder is None:
            return []
        return self._feeder(dict(stats or {}), width, height)

    def engine_config(self, width: float, height: float, stats: dict = None,
                      **overrides) -> dict:
        """Full, validated engine config for a ``width`` x ``height`` surface."""
        cfg = {
            "categories": self.categories,
            "compatibility": self.compatibility,
            "asymmetric": self.asymmetric,
            "bounds": {"width": width, "height": height},
            "trait_alphabet": self.trait_alphabet,
            "initial_genomes": self.initial_genomes,
            "trait_effects": self.trait_effects,
            "feed_points": self.feed_points_from_stats(stats, width, height),
        }
        if not self.trait_alphabet:
            cfg["mutation_rate"] = 0.0
        cfg.update(self.overrides)
        cfg.update(overrides)
        return build_config(cfg)

    def __repr__(self) -> str:
        return f"Theme({self.name!r}, {len(self.categories)} categories)"


# ── Virus evolution ───────────────────────────────────────────────────────────
VIRUS_TYPES = ["commit", "star", "fork", "issue", "pr"]

VIRUS_COMPATIBILITY = {
    ("commit", "commit"): 0.6, ("commit", "star"): 0.3, ("commit", "fork"): 0.4,
    ("commit", "issue"): -0.4, ("commit", "pr"): 0.8,
    ("star", "star"): 0.8, ("star", "fork"): 0.7, ("star", "issue"): -0.5,
    ("star", "pr"): 0.4,
    ("fork", "fork"): 0.5, ("fork", "issue"): -0.3, ("fork", "pr"): 0.6,
    ("issue", "issue"): -0.2, ("issue", "pr"): -0.6,
    ("pr", "pr"): 0.6,
}

# DNA behaviours: heal/commit restore energy, disrupt/spread shake the particle,
# attract pulls neighbours in and evolve raises the mutation chance.
VIRUS_TRAIT_EFFECTS = {
    "commit":  {"energy_rate": 3.0},
    "heal":    {"energy_rate": 6.0},
    "evolve":  {"energy_rate": 0.5, "mutation_bonus": 0.1},
    "attract": {"affinity_bonus": 0.3},
    "disrupt": {"jitter": 120.0},
    "spread":  {"jitter": 40.0},
}


def _virus_seed(stats: dict) -> dict:
    return {
        "commit": min(int(_num(stats, "commits_per_day") * 10), 5),
        "star":   min(int(_num(stats, "total_stars") // 10), 3),
        "fork":   min(int(_num(stats, "total_forks") // 10), 3),
        "issue":  min(int(_num(stats, "open_issues")), 4),
        "pr":     min(int(_num(stats, "pull_requests")), 3),
    }


def _virus_feed(stats: dict, width: float, height: float) -> list:
    """Top repositories become infection points laid out on a 5x2 grid."""
    points = []
    max_radius = min(width, height) / 4.0
    for i, repo in enumerate(list(stats.get("repositories") or [])[:10]):
        strength = max(10.0, _num(repo, "stars") + _num(repo, "forks") * 2)
        points.append({
            "x": (i % 5) * (width / 5) + width / 10,
            "y": (i // 5) * (height / 3) + height / 6,
            "radius": min(strength / 10.0, max_radius),
            "strength": strength / 100.0,
        })
    return points


VIRUS = Theme(
    "virus", VIRUS_TYPES, VIRUS_COMPATIBILITY,
    colors={"commit": (16, 185, 129), "star": (255, 215, 0), "fork": (59, 130, 246),
            "issue": (239, 68, 68), "pr": (236, 72, 153)},
    shapes={"commit": "circle", "star": "pentagon", "fork": "triangle",
            "issue": "diamond", "pr": "hexagon"},
    seeder=_virus_seed, feeder=_virus_feed,
    trait_alphabet=["evolve", "spread", "attract", "disrupt", "heal"],
    initial_genomes={"commit": ["commit", "replicate", "mutate"],
                     "star": ["star", "attract", "evolve"],
                     "fork": ["fork", "spread", "replicate"],
                     "issue": ["issue", "disrupt", "spread"],
                     "pr": ["pr", "heal", "evolve"]},
    trait_effects=VIRUS_TRAIT_EFFECTS,
    overrides={"input_mode": "spawn", "connection_threshold": 0.6,
               "mutation_rate": 0.15, "decay_rate": 6.0, "lifespan": (5.0, 10.0)},
    description="Activity viruses replicate, mutate and feed on repositories.",
)


# ── Emotion canvas ────────────────────────────────────────────────────────────
EMOTIONS = ["sadness", "trust", "love", "joy", "anticipation", "fear", "surprise", "anger"]

EMOTION_COMPATIBILITY = {
    "joy":          {"joy": 0.8, "trust": 0.7, "love": 0.9, "anticipation": 0.6,
                     "sadness": -0.3, "anger": -0.5, "fear": -0.4, "surprise": 0.7},
    "trust":        {"joy": 0.7, "trust": 0.9, "love": 0.8, "anticipation": 0.5,
                     "sadness": -0.2, "anger": -0.6, "fear": -0.3, "surprise": 0.4},
    "love":         {"joy": 0.9, "trust": 0.8, "love": 1.0, "anticipation": 0.7,
                     "sadness": -0.4, "anger": -0.6, "fear": -0.5, "surprise": 0.8},
    "anticipation": {"joy": 0.6, "trust": 0.5, "love": 0.7, "anticipation": 0.8,
                     "sadness": -0.3, "anger": 0.2, "fear": 0.3, "surprise": 0.9},
    "sadness":      {"joy": -0.3, "trust": -0.2, "love": -0.4, "anticipation": -0.3,
                     "sadness": 0.7, "anger": 0.4, "fear": 0.6, "surprise": -0.2},
    "anger":        {"joy": -0.5, "trust": -0.6, "love": -0.6, "anticipation": 0.2,
                     "sadness": 0.4, "anger": 0.8, "fear": 0.5, "surprise": 0.3},
    "fear":         {"joy": -0.4, "trust": -0.3, "love": -0.5, "anticipation": 0.3,
                     "sadness": 0.6, "anger": 0.5, "fear": 0.9, "surprise": 0.7},
    "surprise":     {"joy": 0.7, "trust": 0.4, "love": 0.8, "anticipation": 0.9,
                     "sadness": -0.2, "anger": 0.3, "fear": 0.7, "surprise": 1.0},
}


def emotion_scores(stats: dict) -> dict:
    """Per-emotion score in [0, 1] derived from profile activity."""
    stars = _num(stats, "total_stars")
    commits = _num(stats, "commits_per_day")
    issues = _num(stats, "open_issues")
    followers = _num(stats, "followers")
    streak = _num(stats, "streak")
    repos = len(stats.get("repositories") or [])
    return {
        "joy":          min(1.0, (stars + followers * 2) / 1000),
        "trust":        min(1.0, (streak + commits * 30) / 365),
        "anticipation": min(1.0, repos / 50),
        "love":         min(1.0, _num(stats, "total_forks") / 500),
        "fear":         min(1.0, issues / 100),
        "anger":        1.0 if issues > commits * 10 else 0.0,
        "surprise":     1.0 if stars > commits * 50 else 0.0,
        "sadness":      1.0 if commits < 1 else 0.0,
    }


def _emotion_seed(stats: dict) -> dict:
    scores = emotion_scores(stats)
    counts = {e: round(s * 4) for e, s in scores.items()}
    dominant = max(EMOTIONS, key=lambda e: scores[e])
    counts[dominant] = max(counts[dominant], 1)
    return counts


EMOTION = Theme(
    "emotion", EMOTIONS, EMOTION_COMPATIBILITY,
    colors={"joy": (255, 215, 0), "sadness": (65, 105, 225), "anger": (220, 20, 60),
            "fear": (128, 0, 128), "surprise": (255, 165, 0), "trust": (50, 205, 50),
            "anticipation": (255, 99, 71), "love": (255, 105, 180)},
    shapes={e: "circle" for e in EMOTIONS},
    seeder=_emotion_seed,
    overrides={"input_mode": "inject", "connection_threshold": 0.5,
               "noise": 60.0, "lifespan": (15.0, 30.0), "decay_rate": 0.5,
               "replication_chance": 0.005},
    description="Paint emotional force fields; compatible emotions bond.",
)


# ── Star forge ────────────────────────────────────────────────────────────────
PARADIGMS = ["procedural", "object_oriented", "functional", "declarative",
             "concurrent", "quantum"]

_PARADIGM_LINKS = {
    "functional":      ["declarative", "concurrent"],
    "object_oriented": ["procedural", "concurrent"],
    "procedural":      ["object_oriented", "concurrent"],
    "declarative":     ["functional", "quantum"],
    "concurrent":      ["functional", "object_oriented", "procedural"],
    "quantum":         ["declarative", "concurrent"],
}

# Directional: quantum likes concurrent more than concurrent likes quantum.
STAR_FORGE_COMPATIBILITY = {
    (a, b): 0.9 if a == b else (0.6 if b in _PARADIGM_LINKS[a] else 0.2)
    for a in PARADIGMS for b in PARADIGMS
}

LANGUAGE_PARADIGMS = {
    "c": "procedural", "go": "concurrent", "rust": "concurrent",
    "erlang": "concurrent", "elixir": "concurrent",
    "java": "object_oriented", "c#": "object_oriented", "c++": "object_oriented",
    "python": "object_oriented", "ruby": "object_oriented", "kotlin": "object_oriented",
    "haskell": "functional", "ocaml": "functional", "clojure": "functional",
    "scala": "functional", "f#": "functional", "javascript": "functional",
    "typescript": "functional",
    "sql": "declarative", "prolog": "declarative", "html": "declarative",
    "css": "declarative", "nix": "declarative",
    "q#": "quantum", "qsharp": "quantum",
}


def _star_forge_seed(stats: dict) -> dict:
    counts = {p: 0 for p in PARADIGMS}
    for lang in (stats.get("languages") or {}):
        paradigm = LANGUAGE_PARADIGMS.get(str(lang).lower(), "procedural")
        counts[paradigm] = min(4, counts[paradigm] + 1)
    return counts


STAR_FORGE = Theme(
    "star_forge", PARADIGMS, STAR_FORGE_COMPATIBILITY,
    colors={"procedural": (148, 163, 184), "object_oriented": (59, 130, 246),
            "functional": (168, 85, 247), "declarative": (34, 197, 94),
            "concurrent": (249, 115, 22), "quantum": (6, 182, 212)},
    shapes={"procedural": "square", "object_oriented": "hexagon",
            "functional": "circle", "declarative": "diamond",
            "concurrent": "triangle", "quantum": "pentagon"},
    seeder=_star_forge_seed, asymmetric=True,
    trait_alphabet=["closures", "generics", "coroutines", "macros", "pattern_matching"],
    overrides={"input_mode": "spawn", "category_bias": "velocity",
               "connection_threshold": 0.7, "interaction_radius": 100.0},
    description="Programming paradigms drift into constellations.",
)


# ── Circus dimension ──────────────────────────────────────────────────────────
PERFORMERS = ["acrobat", "clown", "juggler", "trapeze", "tightrope"]

CIRCUS_COMPATIBILITY = {
    ("acrobat", "acrobat"): 0.8, ("acrobat", "clown"): -0.3,
    ("acrobat", "juggler"): 0.3, ("acrobat", "trapeze"): 0.7,
    ("acrobat", "tightrope"): 0.6,
    ("clown", "clown"): 0.8, ("clown", "juggler"): 0.7,
    ("clown", "trapeze"): -0.4, ("clown", "tightrope"): -0.5,
    ("juggler", "juggler"): 0.8, ("juggler", "trapeze"): -0.2,
    ("juggler", "tightrope"): 0.2,
    ("trapeze", "trapeze"): 0.8, ("trapeze", "tightrope"): 0.6,
    ("tightrope", "tightrope"): 0.8,
}


def circus_skills(stats: dict) -> dict:
    return {
        "acrobat":   min(100.0, _num(stats, "commits_per_day") * 10),
        "juggler":   min(100.0, len(stats.get("repositories") or []) * 5),
        "clown":     min(100.0, _num(stats, "open_issues") * 2),
        "trapeze":   min(100.0, _num(stats, "total_stars") / 10),
        "tightrope": min(100.0, _num(stats, "streak") * 2),
    }


def _circus_seed(stats: dict) -> dict:
    return {p: 1 + int(skill // 34) for p, skill in circus_skills(stats).items() if skill > 0}


CIRCUS = Theme(
    "circus", PERFORMERS, CIRCUS_COMPATIBILITY,
    colors={"acrobat": (239, 68, 68), "clown": (250, 204, 21), "juggler": (34, 197, 94),
            "trapeze": (168, 85, 247), "tightrope": (59, 130, 246)},
    shapes={"acrobat": "triangle", "clown": "circle", "juggler": "hexagon",
            "trapeze": "diamond", "tightrope": "square"},
    seeder=_circus_seed,
    trait_alphabet=["flip", "twist", "somersault", "balance", "toss", "catch",
                    "spin", "cascade", "swing", "twirl", "walk", "pose"],
    initial_genomes={"acrobat": ["flip", "twist", "somersault", "balance"],
                     "juggler": ["toss", "catch", "spin", "cascade"],
                     "clown": ["juggle", "balance", "trick", "laugh"],
                     "trapeze": ["swing", "release", "catch", "twirl"],
                     "tightrope": ["walk", "balance", "twirl", "pose"]},
    trait_effects={"balance": {"energy_rate": 1.0}, "spin": {"jitter": 60.0},
                   "somersault": {"jitter": 90.0}},
    overrides={"input_mode": "spawn"},
    description="Performers rehearse routines that mutate between generations.",
)


# ── Neural dream weaver ───────────────────────────────────────────────────────
DREAMS = ["memory", "desire", "fear", "aspiration"]

DREAM_COMPATIBILITY = {
    ("memory", "memory"): 0.7, ("memory", "desire"): 0.4, ("memory", "fear"): 0.3,
    ("memory", "aspiration"): 0.5,
    ("desire", "desire"): 0.8, ("desire", "fear"): -0.6, ("desire", "aspiration"): 0.8,
    ("fear", "fear"): 0.6, ("fear", "aspiration"): -0.7,
    ("aspiration", "aspiration"): 0.9,
}


def dream_intensities(stats: dict) -> dict:
    return {
        "memory":     min(1.0, _num(stats, "years_active") / 5),
        "desire":     min(1.0, (_num(stats, "total_stars") + _num(stats, "total_forks")) / 1000),
        "fear":       min(1.0, _num(stats, "open_issues") / 50),
        "aspiration": min(1.0, len(stats.get("languages") or {}) / 10),
    }


def _dream_seed(stats: dict) -> dict:
    return {d: round(i * 6) for d, i in dream_intensities(stats).items() if i > 0.1}


DREAM = Theme(
    "dream", DREAMS, DREAM_COMPATIBILITY,
    colors={"memory": (139, 92, 246), "desire": (236, 72, 153),
            "fear": (239, 68, 68), "aspiration": (16, 185, 129)},
    shapes={"memory": "hexagon", "desire": "diamond", "fear": "triangle",
            "aspiration": "circle"},
    seeder=_dream_seed,
    trait_alphabet=["spiral", "wave", "fractal", "echo"],
    overrides={"input_mode": "inject", "noise": 45.0, "damping": 0.96},
    mutant_color=(250, 250, 255), background=(4, 4, 12),
    description="Dream fragments drift, bond and fade.",
)


THEMES = {t.name: t for t in (VIRUS, EMOTION, STAR_FORGE, CIRCUS, DREAM)}


def get_theme(name: str) -> Theme:
    try:
        return THEMES[name]
    except KeyError:
        raise ConfigurationError(
            f"unknown theme {name!r}; choose from {sorted(THEMES)}") from None
