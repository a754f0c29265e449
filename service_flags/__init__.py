"""
Feature-flag runtime core.
"""
