"""Root conftest, runs before any test module imports."""

import os

# Rich honours FORCE_COLOR even when stdout is not a terminal, which puts
# ANSI escape codes into the CLI output the tests match against.
os.environ.pop("FORCE_COLOR", None)
os.environ["NO_COLOR"] = "1"
