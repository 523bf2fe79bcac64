"""
task-with-me: a personal scheduler for recurring shell commands.

Packages:
- tasks: models, JSON document store, shell execution, scheduling
- core: controller (single writer), state, events, ports, errors
- cli / connectors: entrypoint, slash commands, console front-end
"""
