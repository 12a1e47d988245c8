from soundboard.main import run

run()
