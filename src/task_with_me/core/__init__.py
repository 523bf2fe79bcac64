"""
Core of the app: the controller and everything it mutates.

Components:
- controller.py: sequential event loop, the only writer of AppState
- state.py: AppState, notifications
- events.py: intents and completion events
- ports.py: storage / runner protocols
- errors.py: AppError hierarchy
"""
