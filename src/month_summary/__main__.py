from month_summary.cli import app

app()
