"""
TTime – course selection, timetable browsing and calendar export.
"""

__version__ = "0.1.0"
