"""
launchpad.integrations - External Service Integrations
========================================================

Sub-packages:
    - notifications: Slack and in-memory notifiers for the end-of-run message.
"""
