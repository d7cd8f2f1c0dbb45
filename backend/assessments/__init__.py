"""
Assessments

Assessment engines served by the backend.
"""
