from __future__ import annotations

"""``assetRepository`` console script."""

from typing import Any

__all__ = ["main", "cli"]


def __getattr__(name: str) -> Any:
    # Importing click and the repository stack is deferred until the group is used.
    if name == "cli":
        from .__main__ import cli

        return cli
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def main() -> None:  # pragma: no cover - console_scripts wrapper
    from .__main__ import cli

    cli(prog_name="assetRepository")
