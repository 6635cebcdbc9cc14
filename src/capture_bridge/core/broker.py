"""Capability broker: permission-gated camera/gallery requests.

The broker holds at most one active request. Each accepted request ends in
exactly one message to the registered listener:

    CAMERA_SUCCESS:<base64>   GALLERY_SUCCESS:<base64>
    CANCEL                    Permission Denied
    ERROR:<reason>

It is driven entirely by callbacks from its collaborators and expects them
to be delivered one at a time on the host's main thread.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Mapping, Optional, Union

from capture_bridge.common.models import (
    ALL_PERMISSIONS,
    ActionOutcome,
    Capability,
    ErrorKind,
    Permission,
    Request,
    RequestState,
    ResultEvent,
)
from capture_bridge.core.config import Config
from capture_bridge.core.encoding import encode_image
from capture_bridge.core.errors import (
    BrokerBusyError,
    BrokerNotInitializedError,
    DispatchUnavailableError,
    ImageDecodeError,
)
from capture_bridge.core.platforms.base_platform import ActionLauncher, ListenerSink, PermissionGate
from capture_bridge.core.storage import MediaStorage

logger = logging.getLogger(__name__)

NO_IMAGE_SELECTED = "No image selected from gallery."
STORAGE_FAILED = "Could not create image file."
_DECODE_FAILED = {
    Capability.CAPTURE: "Failed to load camera image.",
    Capability.PICK: "Failed to load gallery image.",
}
_NO_HANDLER = {
    Capability.CAPTURE: "No camera app available.",
    Capability.PICK: "No gallery app available.",
}


class CapabilityBroker:
    """Owns the single in-flight capture/pick request and its lifecycle"""

    def __init__(
        self,
        permissions: PermissionGate,
        launcher: ActionLauncher,
        sink: ListenerSink,
        storage: MediaStorage,
        required_permissions: Iterable[Permission] = ALL_PERMISSIONS,
        mime_filter: str = "image/*",
        line_wrap: bool = False,
    ):
        self._permissions = permissions
        self._launcher = launcher
        self._sink = sink
        self._storage = storage
        self._required = frozenset(required_permissions)
        self.mime_filter = mime_filter
        self.line_wrap = line_wrap
        self._target: Optional[str] = None
        self._method: Optional[str] = None
        self._active: Optional[Request] = None

    @classmethod
    def from_config(
        cls,
        config: Config,
        permissions: PermissionGate,
        launcher: ActionLauncher,
        sink: ListenerSink,
    ) -> "CapabilityBroker":
        """Build a broker whose storage and policy come from `config`"""
        return cls(
            permissions,
            launcher,
            sink,
            MediaStorage(config.picture_dir),
            required_permissions=config.required_permissions,
            mime_filter=config.get("mime_filter", "image/*"),
            line_wrap=bool(config.get("base64_line_wrap", False)),
        )

    @property
    def state(self) -> RequestState:
        return self._active.state if self._active else RequestState.IDLE

    @property
    def active_request(self) -> Optional[Request]:
        return self._active

    @property
    def initialized(self) -> bool:
        return self._target is not None and self._method is not None

    def initialize(self, target: str, method: str) -> None:
        """Register where terminal messages go, replacing any earlier target"""
        self._target = target
        self._method = method
        logger.debug("Broker initialized with target=%s method=%s", target, method)

    def request_capture(self) -> Request:
        """Start a camera capture request"""
        return self._begin(Capability.CAPTURE)

    def request_pick(self) -> Request:
        """Start a gallery pick request"""
        return self._begin(Capability.PICK)

    def _begin(self, capability: Capability) -> Request:
        logger.debug("%s requested", capability.value)
        if not self.initialized:
            raise BrokerNotInitializedError()
        if self._active is not None:
            logger.warning(
                "Rejecting %s: %s request %s is %s",
                capability.value,
                self._active.capability.value,
                self._active.token,
                self._active.state.value,
            )
            raise BrokerBusyError(self._active)

        request = Request(capability=capability)
        self._active = request
        try:
            granted = self._permissions.check_granted(self._required)
        except Exception as e:
            logger.error("Permission check failed, prompting instead: %s", e)
            granted = False
        if granted:
            self._dispatch(request)
        else:
            self._transition(request, RequestState.PERMISSION_PENDING)
            try:
                self._permissions.prompt_for(self._required, request.token, self.on_permission_result)
            except Exception as e:
                logger.error("Permission prompt failed: %s", e)
                if self._active is request:
                    self._finish(request, ResultEvent.permission_denied(request))
        return request

    def on_permission_result(self, token: str, grants: Mapping[Union[Permission, str], bool]) -> None:
        """Handle the answer to a permission prompt"""
        request = self._active
        if request is None or request.token != token or request.state != RequestState.PERMISSION_PENDING:
            logger.warning("Ignoring stale permission result for token %s", token)
            return

        granted = self._granted(grants)
        if self._required <= granted:
            logger.debug("Permissions granted for %s", token)
            self._dispatch(request)
        else:
            logger.error("Permissions denied: missing %s", sorted(p.value for p in self._required - granted))
            self._finish(request, ResultEvent.permission_denied(request))

    def on_action_result(self, outcome: ActionOutcome) -> None:
        """Handle the single callback of a dispatched action"""
        request = self._active
        if request is None or request.token != outcome.token or request.state != RequestState.ACTION_DISPATCHED:
            logger.warning("Ignoring stale action result for token %s", outcome.token)
            return

        if outcome.error == ErrorKind.DISPATCH_UNAVAILABLE:
            self._discard_destination(request)
            self._fail(request, _NO_HANDLER[request.capability], ErrorKind.DISPATCH_UNAVAILABLE)
            return

        if not outcome.ok:
            logger.debug("%s %s not OK (cancelled)", request.capability.value, request.token)
            self._discard_destination(request)
            self._finish(request, ResultEvent.cancelled(request))
            return

        if request.capability == Capability.CAPTURE:
            source = request.destination
        else:
            source = outcome.payload
            if not source:
                logger.error("Gallery result data is empty")
                self._fail(request, NO_IMAGE_SELECTED, ErrorKind.NO_IMAGE_SELECTED)
                return

        logger.debug("Encoding %s result from %s", request.capability.value, source)
        try:
            if source is None:
                raise ImageDecodeError("No capture destination recorded")
            text = encode_image(source, line_wrap=self.line_wrap)
        except (ImageDecodeError, OSError) as e:
            logger.error("Error encoding %s image: %s", request.capability.value, e)
            self._discard_destination(request)
            self._fail(request, _DECODE_FAILED[request.capability], ErrorKind.DECODE_FAILURE)
            return
        self._finish(request, ResultEvent.success(request, text))

    def _dispatch(self, request: Request) -> None:
        if request.capability == Capability.CAPTURE:
            try:
                request.destination = self._storage.create_image_file()
            except OSError as e:
                logger.error("Error creating image file: %s", e)
                self._fail(request, STORAGE_FAILED, ErrorKind.STORAGE_FAILURE)
                return

        self._transition(request, RequestState.ACTION_DISPATCHED)
        try:
            if request.capability == Capability.CAPTURE:
                self._launcher.launch_capture(request.destination, request.token, self.on_action_result)
            else:
                self._launcher.launch_picker(self.mime_filter, request.token, self.on_action_result)
        except DispatchUnavailableError as e:
            logger.error("No handler for %s: %s", request.capability.value, e)
            if self._active is request:
                self._discard_destination(request)
                self._fail(request, _NO_HANDLER[request.capability], ErrorKind.DISPATCH_UNAVAILABLE)
        except Exception as e:
            logger.exception("Launching %s failed", request.capability.value)
            if self._active is request:
                self._discard_destination(request)
                self._fail(request, str(e) or type(e).__name__, ErrorKind.LAUNCH_FAILURE)

    def _granted(self, grants: Mapping[Union[Permission, str], bool]) -> frozenset:
        granted = set()
        for key, value in grants.items():
            try:
                permission = Permission(key)
            except ValueError:
                logger.warning("Unknown permission in result: %s", key)
                continue
            if value:
                granted.add(permission)
        return frozenset(granted)

    def _transition(self, request: Request, state: RequestState) -> None:
        logger.debug("%s %s: %s -> %s", request.capability.value, request.token, request.state.value, state.value)
        request.state = state

    def _discard_destination(self, request: Request) -> None:
        # Only empty placeholders are removed; a written capture is left alone.
        path: Optional[Path] = request.destination
        if path is None:
            return
        try:
            if path.exists() and path.stat().st_size == 0:
                path.unlink()
        except OSError as e:
            logger.debug("Could not remove %s: %s", path, e)

    def _fail(self, request: Request, reason: str, error: ErrorKind) -> None:
        self._finish(request, ResultEvent.failure(request, reason, error))

    def _finish(self, request: Request, event: ResultEvent) -> None:
        self._transition(request, RequestState.COMPLETED)
        # Cleared before delivery so the listener may start the next request.
        self._active = None
        self._deliver(event)

    def _deliver(self, event: ResultEvent) -> None:
        message = event.to_message()
        try:
            self._sink.send_message(self._target, self._method, message)
        except Exception:
            logger.exception("Delivering message to %s.%s failed", self._target, self._method)
            return
        logger.info("Sent message to %s.%s: %s", self._target, self._method, message[:80])
