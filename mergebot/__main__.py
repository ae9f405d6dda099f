from mergebot.main import run

run()
