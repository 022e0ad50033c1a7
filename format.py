#!/usr/bin/env python3
"""Run Black over the package and tests. Pass --check to only report."""

import subprocess
import sys

TARGETS = ["xpost_mcp", "tests"]

args = [sys.executable, "-m", "black", "--line-length", "100"]
if "--check" in sys.argv[1:]:
    args += ["--check", "--diff"]

result = subprocess.run(args + TARGETS)
sys.exit(result.returncode)
