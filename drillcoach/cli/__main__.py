from drillcoach.cli.main import run

run()
