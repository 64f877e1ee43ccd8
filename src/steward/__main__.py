from steward.cli import app

app()
