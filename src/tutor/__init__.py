"""
Sign Language Tutor - Session Module

Session state machine, frame-paced detection loop and the app facade.
"""
from .config import Config, load_config
from .session import LearningMode, SessionState, SessionStateMachine
from .scheduler import DetectionScheduler, LatestCell
from .app import TutorApp

__all__ = [
    'Config',
    'load_config',
    'LearningMode',
    'SessionState',
    'SessionStateMachine',
    'DetectionScheduler',
    'LatestCell',
    'TutorApp',
]
