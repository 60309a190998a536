"""Optimization annotator.

Optimization is a tier choice (0-3), not a transformation: the selected
tier becomes a block of comments and preprocessor directives prepended to
the generated C, and an -O flag for the C compiler.
"""

from __future__ import annotations

MAX_TIER = 3

TIER_NOTES: dict[int, tuple[str, ...]] = {
    0: ("No optimizations",),
    1: ("Basic loop optimizations", "Simple function inlining"),
    2: ("Aggressive loop optimizations", "Function inlining", "Memory access optimizations"),
    3: (
        "Maximum optimizations",
        "Aggressive inlining",
        "SIMD vectorization",
        "Cache optimization",
        "Branch prediction",
    ),
}

BRANCH_HINTS = (
    "#define likely(x)   __builtin_expect(!!(x), 1)",
    "#define unlikely(x) __builtin_expect(!!(x), 0)",
)

FEATURE_PROBES = (
    "#ifdef __SSE__",
    "#include <immintrin.h>",
    "#define Z_HAS_SIMD 1",
    "#endif",
    "#ifdef _OPENMP",
    "#include <omp.h>",
    "#define Z_HAS_PARALLEL 1",
    "#endif",
)


def normalize_tier(tier: int) -> int:
    """Tiers 0-3 are kept; anything else selects the maximum tier."""
    if isinstance(tier, int) and 0 <= tier <= MAX_TIER:
        return tier
    return MAX_TIER


def directives(tier: int) -> str:
    """The comment and directive block for an optimization tier."""
    tier = normalize_tier(tier)
    lines = [
        f"// Z Language code with optimization level {tier}",
        "// Optimizations applied:",
    ]
    lines.extend(f"// - {note}" for note in TIER_NOTES[tier])
    if tier >= 1:
        lines.append(f"#define Z_OPT_LEVEL {tier}")
    if tier >= 2:
        lines.extend(BRANCH_HINTS)
    if tier >= 3:
        lines.extend(FEATURE_PROBES)
    return "\n".join(lines) + "\n"


def annotate(source: str, tier: int) -> str:
    """Prepend the directive block for tier to generated C source."""
    return directives(tier) + "\n" + source
