from pathlib import Path

import pytest
from PIL import Image

from capture_bridge.common.models import ActionOutcome
from capture_bridge.core.broker import CapabilityBroker
from capture_bridge.core.platforms.base_platform import ActionLauncher, ListenerSink, PermissionGate
from capture_bridge.core.storage import MediaStorage


class FakeGate(PermissionGate):
    def __init__(self, granted: bool = True) -> None:
        self.granted = granted
        self.prompts = []

    def check_granted(self, permissions) -> bool:
        return self.granted

    def prompt_for(self, permissions, token, on_result) -> None:
        self.prompts.append((permissions, token, on_result))

    def answer(self, grants) -> None:
        permissions, token, on_result = self.prompts[-1]
        on_result(token, grants)


class FakeLauncher(ActionLauncher):
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.launches = []

    def launch_capture(self, destination, token, on_result) -> None:
        if self.error:
            raise self.error
        self.launches.append(("capture", destination, token, on_result))

    def launch_picker(self, mime_filter, token, on_result) -> None:
        if self.error:
            raise self.error
        self.launches.append(("pick", mime_filter, token, on_result))

    def finish(self, ok: bool = True, payload: str | None = None, **kwargs) -> None:
        _, _, token, on_result = self.launches[-1]
        on_result(ActionOutcome(token=token, ok=ok, payload=payload, **kwargs))


class RecordingSink(ListenerSink):
    def __init__(self) -> None:
        self.messages = []

    def send_message(self, target, method, message) -> None:
        self.messages.append((target, method, message))

    @property
    def texts(self) -> list[str]:
        return [m for _, _, m in self.messages]


@pytest.fixture
def gate() -> FakeGate:
    return FakeGate()


@pytest.fixture
def launcher() -> FakeLauncher:
    return FakeLauncher()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def broker(tmp_path, gate, launcher, sink) -> CapabilityBroker:
    b = CapabilityBroker(gate, launcher, sink, MediaStorage(tmp_path / "Pictures"))
    b.initialize("CameraManager", "OnResult")
    return b


@pytest.fixture
def jpeg_file(tmp_path) -> Path:
    path = tmp_path / "photo.jpg"
    Image.new("RGB", (37, 21), (200, 30, 90)).save(path, format="JPEG")
    return path
