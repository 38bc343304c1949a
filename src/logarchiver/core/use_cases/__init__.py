"""Use cases: input resolution, per-source export control, batch execution."""
