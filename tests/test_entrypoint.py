"""Verify the ppp console script entry point resolves."""
from ppp.cli import cli


def test_cli_callable():
    assert callable(cli)


def test_entrypoint_metadata():
    """Verify the 'ppp' entry point is declared in package metadata."""
    from importlib.metadata import entry_points
    names = [ep.name for ep in entry_points(group="console_scripts")]
    assert "ppp" in names, f"'ppp' entry point not found in: {names}"
