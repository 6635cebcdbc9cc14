import pytest
from PIL import Image

from capture_bridge.common.models import ActionOutcome, ErrorKind, Permission, RequestState
from capture_bridge.core.broker import CapabilityBroker
from capture_bridge.core.encoding import decode_image
from capture_bridge.core.errors import BrokerBusyError, BrokerNotInitializedError, DispatchUnavailableError
from capture_bridge.core.storage import MediaStorage

from conftest import FakeGate, FakeLauncher, RecordingSink

ALL_GRANTED = {Permission.CAMERA: True, Permission.READ_MEDIA: True, Permission.WRITE_MEDIA: True}


def test_request_before_initialize_is_rejected(tmp_path, gate, launcher, sink) -> None:
    broker = CapabilityBroker(gate, launcher, sink, MediaStorage(tmp_path))
    with pytest.raises(BrokerNotInitializedError):
        broker.request_capture()
    assert broker.state == RequestState.IDLE
    assert sink.messages == []


def test_initialize_replaces_previous_target(broker, launcher, sink) -> None:
    broker.initialize("Other", "Handle")
    broker.request_pick()
    launcher.finish(ok=False)
    assert sink.messages == [("Other", "Handle", "CANCEL")]


def test_granted_permissions_dispatch_without_prompt(broker, gate, launcher) -> None:
    request = broker.request_capture()
    assert gate.prompts == []
    assert launcher.launches[0][0] == "capture"
    assert launcher.launches[0][2] == request.token
    assert broker.state == RequestState.ACTION_DISPATCHED


@pytest.mark.parametrize("start", ["request_capture", "request_pick"])
def test_missing_permission_prompts_instead_of_dispatching(broker, gate, launcher, start) -> None:
    gate.granted = False
    request = getattr(broker, start)()
    assert launcher.launches == []
    assert broker.state == RequestState.PERMISSION_PENDING
    permissions, token, _ = gate.prompts[0]
    assert permissions == frozenset(Permission)
    assert token == request.token


@pytest.mark.parametrize("denied", list(Permission))
def test_any_denied_grant_yields_permission_denied(broker, gate, launcher, sink, denied) -> None:
    gate.granted = False
    broker.request_capture()
    gate.answer({**ALL_GRANTED, denied: False})
    assert sink.texts == ["Permission Denied"]
    assert launcher.launches == []
    assert broker.state == RequestState.IDLE


def test_empty_grants_are_denied(broker, gate, sink) -> None:
    gate.granted = False
    broker.request_pick()
    gate.answer({})
    assert sink.texts == ["Permission Denied"]


def test_grant_dispatches_the_gated_action(broker, gate, launcher, sink) -> None:
    gate.granted = False
    request = broker.request_pick()
    gate.answer({p.value: True for p in Permission})
    assert launcher.launches == [("pick", "image/*", request.token, broker.on_action_result)]
    assert broker.state == RequestState.ACTION_DISPATCHED
    assert sink.messages == []


def test_busy_request_is_rejected_and_active_request_kept(broker, launcher, sink) -> None:
    first = broker.request_capture()
    with pytest.raises(BrokerBusyError) as excinfo:
        broker.request_pick()
    assert excinfo.value.active is first
    assert broker.active_request is first
    assert len(launcher.launches) == 1
    assert sink.messages == []


def test_cancelled_action_yields_cancel_and_returns_to_idle(broker, launcher, sink) -> None:
    broker.request_capture()
    destination = launcher.launches[0][1]
    launcher.finish(ok=False)
    assert sink.texts == ["CANCEL"]
    assert broker.state == RequestState.IDLE
    assert broker.active_request is None
    assert not destination.exists()


def test_capture_success_round_trips_pixel_dimensions(broker, launcher, sink) -> None:
    broker.request_capture()
    destination = launcher.launches[0][1]
    assert destination.suffix == ".jpg"
    Image.new("RGB", (64, 48), (10, 120, 240)).save(destination, format="JPEG")

    launcher.finish(ok=True)

    [message] = sink.texts
    assert message.startswith("CAMERA_SUCCESS:")
    image = decode_image(message.split(":", 1)[1])
    assert image.size == (64, 48)
    assert image.format == "PNG"


def test_gallery_success_uses_picked_payload(broker, launcher, sink, jpeg_file) -> None:
    broker.request_pick()
    launcher.finish(ok=True, payload=jpeg_file.as_uri())
    [message] = sink.texts
    assert message.startswith("GALLERY_SUCCESS:")
    assert decode_image(message[len("GALLERY_SUCCESS:"):]).size == (37, 21)


def test_gallery_without_payload_reports_no_image(broker, launcher, sink) -> None:
    broker.request_pick()
    launcher.finish(ok=True, payload=None)
    assert sink.texts == ["ERROR:No image selected from gallery."]
    assert broker.state == RequestState.IDLE


def test_undecodable_gallery_image_is_a_failure(broker, launcher, sink, tmp_path) -> None:
    junk = tmp_path / "junk.png"
    junk.write_bytes(b"not an image")
    broker.request_pick()
    launcher.finish(ok=True, payload=str(junk))
    assert sink.texts == ["ERROR:Failed to load gallery image."]


def test_empty_capture_file_is_a_failure(broker, launcher, sink) -> None:
    broker.request_capture()
    launcher.finish(ok=True)
    assert sink.texts == ["ERROR:Failed to load camera image."]
    assert broker.state == RequestState.IDLE


def test_failed_capture_removes_empty_placeholder(broker, launcher, sink, tmp_path) -> None:
    broker.request_capture()
    launcher.finish(ok=True)
    assert sink.texts == ["ERROR:Failed to load camera image."]
    assert list((tmp_path / "Pictures").iterdir()) == []


def test_unavailable_capture_outcome_removes_empty_placeholder(broker, launcher, sink, tmp_path) -> None:
    broker.request_capture()
    launcher.finish(ok=False, error=ErrorKind.DISPATCH_UNAVAILABLE)
    assert sink.texts == ["ERROR:No camera app available."]
    assert list((tmp_path / "Pictures").iterdir()) == []


def test_dispatch_unavailable_is_reported(tmp_path, gate, sink) -> None:
    launcher = FakeLauncher(error=DispatchUnavailableError("no camera"))
    broker = CapabilityBroker(gate, launcher, sink, MediaStorage(tmp_path / "Pictures"))
    broker.initialize("T", "M")
    broker.request_capture()
    assert sink.texts == ["ERROR:No camera app available."]
    assert broker.state == RequestState.IDLE
    assert list((tmp_path / "Pictures").iterdir()) == []


def test_dispatch_unavailable_outcome_is_reported(broker, launcher, sink) -> None:
    broker.request_pick()
    launcher.finish(ok=False, error=ErrorKind.DISPATCH_UNAVAILABLE)
    assert sink.texts == ["ERROR:No gallery app available."]


def test_launcher_crash_becomes_failure_message(tmp_path, gate, sink) -> None:
    broker = CapabilityBroker(gate, FakeLauncher(error=RuntimeError("boom")), sink, MediaStorage(tmp_path))
    broker.initialize("T", "M")
    broker.request_pick()
    assert sink.texts == ["ERROR:boom"]
    assert broker.state == RequestState.IDLE


def test_storage_failure_becomes_failure_message(tmp_path, gate, launcher, sink) -> None:
    blocker = tmp_path / "file"
    blocker.write_text("x")
    broker = CapabilityBroker(gate, launcher, sink, MediaStorage(blocker / "Pictures"))
    broker.initialize("T", "M")
    broker.request_capture()
    assert sink.texts == ["ERROR:Could not create image file."]
    assert launcher.launches == []


def test_stale_callbacks_are_ignored(broker, gate, launcher, sink) -> None:
    broker.request_pick()
    _, _, token, on_result = launcher.launches[0]
    launcher.finish(ok=False)

    # Late duplicate of the same callback after the request finished
    launcher.finish(ok=False)
    broker.on_permission_result(token, ALL_GRANTED)

    broker.request_pick()
    on_result(ActionOutcome(token=token, ok=False))
    assert sink.texts == ["CANCEL"]
    assert broker.state == RequestState.ACTION_DISPATCHED


def test_exactly_one_event_per_request_across_branches(tmp_path, jpeg_file) -> None:
    sink = RecordingSink()
    gate = FakeGate()
    launcher = FakeLauncher()
    broker = CapabilityBroker(gate, launcher, sink, MediaStorage(tmp_path / "Pictures"))
    broker.initialize("T", "M")

    broker.request_pick()
    launcher.finish(ok=True, payload=str(jpeg_file))
    broker.request_pick()
    launcher.finish(ok=False)
    broker.request_pick()
    launcher.finish(ok=True, payload=None)
    gate.granted = False
    broker.request_capture()
    gate.answer({Permission.CAMERA: False})

    kinds = [m.split(":", 1)[0] for m in sink.texts]
    assert kinds == ["GALLERY_SUCCESS", "CANCEL", "ERROR", "Permission Denied"]
    assert broker.state == RequestState.IDLE


def test_listener_errors_do_not_propagate(tmp_path, gate, launcher) -> None:
    class _BrokenSink(RecordingSink):
        def send_message(self, target, method, message) -> None:
            raise RuntimeError("host gone")

    broker = CapabilityBroker(gate, launcher, _BrokenSink(), MediaStorage(tmp_path))
    broker.initialize("T", "M")
    broker.request_pick()
    launcher.finish(ok=False)
    assert broker.state == RequestState.IDLE


def test_listener_can_start_next_request_from_callback(tmp_path, gate, launcher) -> None:
    started = []

    class _ChainingSink(RecordingSink):
        def send_message(self, target, method, message) -> None:
            super().send_message(target, method, message)
            if len(started) == 0:
                started.append(broker.request_pick())

    sink = _ChainingSink()
    broker = CapabilityBroker(gate, launcher, sink, MediaStorage(tmp_path))
    broker.initialize("T", "M")
    broker.request_pick()
    _, _, token, on_result = launcher.launches[0]
    on_result(ActionOutcome(token=token, ok=False))
    assert sink.texts == ["CANCEL"]
    assert len(started) == 1
    assert broker.active_request is started[0]


def test_line_wrapped_base64(tmp_path, gate, launcher, sink, jpeg_file) -> None:
    broker = CapabilityBroker(gate, launcher, sink, MediaStorage(tmp_path), line_wrap=True)
    broker.initialize("T", "M")
    broker.request_pick()
    launcher.finish(ok=True, payload=str(jpeg_file))
    body = sink.texts[0].split(":", 1)[1]
    assert all(len(line) <= 76 for line in body.splitlines())
    assert decode_image(body).size == (37, 21)
