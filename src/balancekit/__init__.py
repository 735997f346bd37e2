"""Balancekit: double-entry bookkeeping with rule-based transaction balancing."""

__version__ = "0.1.0"


# The CLI pulls in every service, so it is only imported on demand
def __getattr__(name):
    if name == "main":
        from balancekit.cli.main import main
        return main
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
