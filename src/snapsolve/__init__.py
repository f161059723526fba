"""snapsolve -- Screenshot-driven coding problem solver.

This package turns screenshots of a coding problem into a structured
problem statement, a candidate solution, and debug revisions of that
solution, through a provider-agnostic vision LLM pipeline. A privileged
background process runs the pipeline; the UI talks to it only through
the command/result bridge.
"""

__version__ = "0.1.0"
