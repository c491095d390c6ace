"""Allow ``python -m kanjiflow``."""

from kanjiflow.cli.main import run

run()
