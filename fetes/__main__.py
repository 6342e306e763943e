"""python -m fetes"""

from fetes.cli import app

app()
