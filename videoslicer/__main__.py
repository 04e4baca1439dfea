"""Module entrypoint for running videoslicer as ``python -m videoslicer``."""

from __future__ import annotations

from videoslicer.cli import main


if __name__ == "__main__":
    main()
