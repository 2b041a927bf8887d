"""
Request dispatcher: one HTTP endpoint, action selected by query parameter.
"""
