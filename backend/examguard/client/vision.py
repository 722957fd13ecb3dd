"""
Camera and YOLO adapters for the detection loop.

``ultralytics`` and ``opencv-python`` come from the ``vision`` extra and are
only imported when a model or camera is actually opened.
"""
import asyncio
import base64
import logging
from typing import Any, List, Optional

from .policy import Prediction

logger = logging.getLogger(__name__)


class YoloClassifier:
    def __init__(self, model):
        self.model = model

    def _predict(self, frame: Any) -> List[Prediction]:
        predictions = []
        for result in self.model.predict(frame, verbose=False):
            if result.boxes is None:
                continue
            for box in result.boxes:
                cls_id = int(box.cls[0])
                name = self.model.names.get(cls_id, f"class_{cls_id}")
                predictions.append(Prediction(label=name.lower(), confidence=float(box.conf[0])))
        return predictions

    async def detect(self, frame: Any) -> List[Prediction]:
        if frame is None:
            return []
        return await asyncio.to_thread(self._predict, frame)


def yolo_model_loader(model_path: str):
    async def load() -> YoloClassifier:
        def _load():
            from ultralytics import YOLO
            return YOLO(model_path)

        model = await asyncio.to_thread(_load)
        logger.info(f"YOLO model loaded from {model_path}")
        return YoloClassifier(model)

    return load


class CameraFrameSource:
    """Webcam frames via OpenCV"""

    def __init__(self, camera_index: int = 0):
        import cv2

        self._cv2 = cv2
        self.capture = cv2.VideoCapture(camera_index)
        self._last_frame = None

    def is_ready(self) -> bool:
        if not self.capture.isOpened():
            return False
        ok, frame = self.capture.read()
        if ok:
            self._last_frame = frame
        return ok

    def read(self) -> Optional[Any]:
        ok, frame = self.capture.read()
        if ok:
            self._last_frame = frame
        return self._last_frame

    def snapshot(self) -> Optional[str]:
        """Last frame as a base64 JPEG data URL, for violation screenshots"""
        if self._last_frame is None:
            return None
        ok, buffer = self._cv2.imencode(".jpg", self._last_frame)
        if not ok:
            return None
        return "data:image/jpeg;base64," + base64.b64encode(buffer.tobytes()).decode("ascii")

    def release(self) -> None:
        self.capture.release()
