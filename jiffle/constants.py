"""Named constants — eliminates magic strings across the codebase."""

from __future__ import annotations

import re

ROLE_READ = "read"
ROLE_WRITE = "write"

OPTION_OUTSIDE = "outside"

SCOPE_GLOBAL = "global"
SCOPE_PIXEL = "pixel"
SCOPE_BLOCK = "block"
SCOPE_FOREACH = "foreach"

MODEL_DIRECT = "direct"
MODEL_INDIRECT = "indirect"

BACKEND_COMPILED = "compiled"
BACKEND_INTERPRETED = "interpreted"
SUPPORTED_BACKENDS: tuple[str, ...] = (BACKEND_COMPILED, BACKEND_INTERPRETED)

DIRECT_BASE_CLASS = "AbstractDirectRuntime"
INDIRECT_BASE_CLASS = "AbstractIndirectRuntime"
DIRECT_CLASS_NAME = "JiffleDirectRuntimeImpl"
INDIRECT_CLASS_NAME = "JiffleIndirectRuntimeImpl"

GENERATED_FILENAME = "<jiffle-runtime>"

# Prefix for local variables in generated source
VAR_PREFIX = "v_"

VALID_IDENTIFIER = re.compile(r"^[a-zA-Z][a-zA-Z0-9_.]*$")

# Absolute tolerance used by comparison operators
COMPARISON_TOLERANCE = 1.0e-8

# Tolerance used when stepping across the world extent
WORLD_EPS = 1.0e-8

DEFAULT_MAX_LOOP_ITERATIONS = 1_000_000

DEFAULT_PROGRESS_INTERVAL = 1
