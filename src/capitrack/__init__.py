"""Capitrack: private investment ledger."""

__version__ = "0.1.0"


# The CLI pulls in every service; load it only when asked for
def __getattr__(name):
    if name == "main":
        from capitrack.cli.main import main
        return main
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
