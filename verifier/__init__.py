"""
Project Verifier: CI verification of student projects

Clones a student's main project and the instructor's test project, builds both
with Maven, runs the verification tests selected by the release tag, and reports
the outcome back to GitHub.
"""

__version__ = "0.1.0"
