from irctl.cli import run

run()
