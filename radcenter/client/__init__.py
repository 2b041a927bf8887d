"""
Client side of the workflow tracker: API client, application state,
authentication, routing and report editing.
"""
