"""
gatherkids.domain: Canonical data models and enumerations.

These are the backend-agnostic shapes every upstream caller consumes.
Nothing in here imports from other gatherkids sub-packages (only stdlib /
third-party Pydantic).
"""
