"""
Data models for phasekit.

Import models explicitly from their modules:
    from phasekit.models.state import ProjectState, PhaseState
    from phasekit.models.project import Project
"""
