"""
ClassPulse - course rosters, assignment workflow and student behavior profiles
"""

__version__ = "1.0.0"
