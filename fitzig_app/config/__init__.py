"""
Runner configuration: defaults, YAML overrides and validation.
"""
