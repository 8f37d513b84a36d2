import json

import cv2
import numpy as np
import pytest
from fastapi.testclient import TestClient

import main
from conftest import FACE, FakeDetector
from models.registry import ModelRegistry


def _receive_until(ws, message_type):
    for _ in range(200):
        message = ws.receive_json()
        if message["type"] == message_type:
            return message
    raise AssertionError(f"no {message_type} message received")


def _registry(loaded=True):
    registry = ModelRegistry(face_detector_model=b"model" if loaded else None)
    if loaded:
        registry.create_face_detector = lambda: FakeDetector([FACE])
    return registry


@pytest.fixture
def client(monkeypatch, tmp_path):
    registry = _registry()
    monkeypatch.setattr(main, "load_all_models", lambda: registry)
    monkeypatch.setattr(main, "CAPTURE_DIR", tmp_path)
    with TestClient(main.app) as c:
        yield c


def test_health(client):
    assert client.get("/health").json() == {"status": "ok", "face_detector_loaded": True}


def test_start_and_reset(client):
    with client.websocket_connect("/ws/register/biometric") as ws:
        assert ws.receive_json()["step"] == "idle"

        ws.send_text(json.dumps({"type": "start"}))
        ack = _receive_until(ws, "command_ack")
        assert ack == {"type": "command_ack", "command": "start", "accepted": True, "step": "face"}

        ws.send_text(json.dumps({"type": "reset"}))
        ack = _receive_until(ws, "command_ack")
        assert ack["accepted"] is True
        assert ack["step"] == "idle"


def test_streamed_frames_reach_detection(client):
    ok, jpeg = cv2.imencode(".jpg", np.full((480, 640, 3), 128, dtype=np.uint8))
    with client.websocket_connect("/ws/register/biometric") as ws:
        ws.receive_json()
        ws.send_text(json.dumps({"type": "start"}))
        _receive_until(ws, "command_ack")
        ws.send_bytes(jpeg.tobytes())

        for _ in range(200):
            status = _receive_until(ws, "status")
            if status["step"] == "blink":
                break
        assert status["face_detected"] is True
        assert status["countdown"] is not None


def test_manual_confirm_rejected_early(client):
    with client.websocket_connect("/ws/register/biometric") as ws:
        ws.receive_json()
        ws.send_text(json.dumps({"type": "confirm_blink"}))
        ack = _receive_until(ws, "command_ack")
        assert ack["accepted"] is False
        assert ack["step"] == "idle"


def test_unknown_and_malformed_commands_ignored(client):
    with client.websocket_connect("/ws/register/biometric") as ws:
        ws.receive_json()
        ws.send_text("not json")
        ws.send_text(json.dumps({"type": "self_destruct"}))
        ws.send_text(json.dumps({"type": "take_photo"}))
        ack = _receive_until(ws, "command_ack")
        assert ack["command"] == "take_photo"


def test_camera_error_reported_by_client(client):
    with client.websocket_connect("/ws/register/biometric") as ws:
        ws.receive_json()
        ws.send_text(json.dumps({"type": "start"}))
        _receive_until(ws, "command_ack")
        ws.send_text(json.dumps({"type": "camera_error"}))
        for _ in range(200):
            message = ws.receive_json()
            if message["type"] == "status" and message["error"]:
                break
        assert message["error"] == main.CAMERA_ERROR
        assert message["step"] == "idle"


def test_start_without_model(monkeypatch, tmp_path):
    monkeypatch.setattr(main, "load_all_models", lambda: _registry(loaded=False))
    monkeypatch.setattr(main, "CAPTURE_DIR", tmp_path)
    with TestClient(main.app) as client:
        assert client.get("/health").json()["face_detector_loaded"] is False
        with client.websocket_connect("/ws/register/biometric") as ws:
            ws.receive_json()
            ws.send_text(json.dumps({"type": "start"}))
            ack = _receive_until(ws, "command_ack")
            assert ack["accepted"] is False
            assert ack["step"] == "idle"
