"""
Front-ends that drive the controller.

Components:
- console_connector.py: stdin REPL printing notifications
"""
