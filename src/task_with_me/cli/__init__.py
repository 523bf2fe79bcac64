"""
Command-line entry and wiring.

Components:
- main.py: entrypoint, runs controller + tick loop + console on one loop
- bootstrap.py: composition root (store, runner, state -> Controller)
- commands.py: slash-command registry used by the console
"""
