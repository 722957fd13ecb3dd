from pydantic_settings import BaseSettings


class ProctorClientSettings(BaseSettings):
    """Settings for the exam-taking agent, read from ``PROCTOR_*`` environment variables."""

    api_base_url: str = "http://localhost:8000/api/v1"
    request_timeout: float = 10.0

    detection_interval: float = 3.0
    violation_cooldown: float = 3.0
    model_load_timeout: float = 60.0
    frame_poll_interval: float = 0.1
    frame_ready_timeout: float = 30.0

    person_confidence: float = 0.5
    object_confidence: float = 0.4

    tab_switch_threshold: int = 3
    fullscreen_refire_window: float = 3.0
    fullscreen_reentry_cooldown: float = 0.5

    model_path: str = "yolo11n.pt"
    camera_index: int = 0

    class Config:
        env_prefix = "PROCTOR_"
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"
