"""
Config loader for the Sign Language Tutor.
Loads YAML configuration with dataclass validation.
"""
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional
import yaml


@dataclass
class CameraConfig:
    device_id: int = 0
    width: int = 640
    height: int = 480
    fps: int = 30
    mirror: bool = True


@dataclass
class MediaPipeConfig:
    max_num_hands: int = 1
    min_detection_confidence: float = 0.5
    min_tracking_confidence: float = 0.5
    model_path: Optional[str] = None  # Defaults to models/hand_landmarker.task


@dataclass
class ClassifierConfig:
    k: int = 1                         # Neighbors that vote
    min_samples_per_letter: int = 10   # Samples before a letter counts as trained
    min_ready_letters: int = 3         # Trained letters before practice is useful
    recommended_total: int = 30        # Below this, warn when leaving training


@dataclass
class DetectionConfig:
    frame_decimation: int = 2          # Process 1 in N ticks
    noise_gate: float = 0.5            # Results at or below are dropped
    status_log_interval: int = 60      # Ticks between detection status logs


@dataclass
class SessionConfig:
    correct_threshold: float = 0.9
    hold_frames: int = 10              # Consecutive correct predictions before committing


@dataclass
class StorageConfig:
    data_dir: str = "~/.local/share/signlang-tutor"
    storage_key: str = "signlang-tutor-classifier"
    export_dir: str = "."
    autoload: bool = True


@dataclass
class UIConfig:
    debug_overlay: bool = False
    window_name: str = "Sign Language Tutor"


@dataclass
class Config:
    camera: CameraConfig = field(default_factory=CameraConfig)
    mediapipe: MediaPipeConfig = field(default_factory=MediaPipeConfig)
    classifier: ClassifierConfig = field(default_factory=ClassifierConfig)
    detection: DetectionConfig = field(default_factory=DetectionConfig)
    session: SessionConfig = field(default_factory=SessionConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    ui: UIConfig = field(default_factory=UIConfig)


def _dict_to_dataclass(cls, data: dict):
    """Convert a dict to a dataclass, ignoring unknown keys."""
    if data is None:
        return cls()
    field_names = {f.name for f in cls.__dataclass_fields__.values()}
    filtered = {k: v for k, v in data.items() if k in field_names}
    return cls(**filtered)


def load_config(config_path: Optional[Path] = None) -> Config:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to config file. If None, uses default config.yaml
                    in project root.

    Returns:
        Config dataclass with all settings.
    """
    if config_path is None:
        # Default to config.yaml in project root
        config_path = Path(__file__).parent.parent.parent / "config.yaml"

    config_path = Path(config_path)

    if not config_path.exists():
        # Return defaults if no config file
        return Config()

    with open(config_path, 'r') as f:
        data = yaml.safe_load(f) or {}

    return Config(
        camera=_dict_to_dataclass(CameraConfig, data.get('camera')),
        mediapipe=_dict_to_dataclass(MediaPipeConfig, data.get('mediapipe')),
        classifier=_dict_to_dataclass(ClassifierConfig, data.get('classifier')),
        detection=_dict_to_dataclass(DetectionConfig, data.get('detection')),
        session=_dict_to_dataclass(SessionConfig, data.get('session')),
        storage=_dict_to_dataclass(StorageConfig, data.get('storage')),
        ui=_dict_to_dataclass(UIConfig, data.get('ui')),
    )
