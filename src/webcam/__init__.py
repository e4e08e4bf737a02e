"""
Sign Language Tutor Webcam Module

Hand tracking using MediaPipe and the background detection worker.
"""
from .hand_tracker import HandTracker, to_hand_landmarks, confidence_color
from .worker import TutorWorker

__all__ = [
    'HandTracker',
    'to_hand_landmarks',
    'confidence_color',
    'TutorWorker',
]
