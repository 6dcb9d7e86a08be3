from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any, Callable, Protocol

from google.auth.exceptions import GoogleAuthError
from google.oauth2.service_account import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from formrelay.core.config import Settings
from formrelay.core.errors import ActionError


logger = logging.getLogger(__name__)

ANDROID_PUBLISHER_SCOPE = "https://www.googleapis.com/auth/androidpublisher"

# Failures raised by the Google client stack: API errors, auth/credential problems, transport.
GOOGLE_CLIENT_ERRORS: tuple[type[BaseException], ...] = (HttpError, GoogleAuthError, OSError, ValueError)


class TesterEditClient(Protocol):
    def open_edit(self) -> str:
        ...

    def get_testers(self, edit_id: str, track: str) -> list[str]:
        ...

    def update_testers(self, edit_id: str, track: str, testers: list[str]) -> None:
        ...

    def commit_edit(self, edit_id: str) -> None:
        ...

    def delete_edit(self, edit_id: str) -> None:
        ...


TesterClientFactory = Callable[[Settings], TesterEditClient]


class GooglePlayTesterClient:
    """Thin wrapper over the Android Publisher v3 edits API for one package."""

    def __init__(self, service_account_file: str, package_name: str, *, service: Any | None = None) -> None:
        self.service_account_file = service_account_file
        self.package_name = package_name
        self._service = service

    def _edits(self) -> Any:
        if self._service is None:
            credentials = Credentials.from_service_account_file(
                self.service_account_file,
                scopes=[ANDROID_PUBLISHER_SCOPE],
            )
            self._service = build("androidpublisher", "v3", credentials=credentials, cache_discovery=False)
        return self._service.edits()

    def open_edit(self) -> str:
        edit = self._edits().insert(packageName=self.package_name, body={}).execute()
        return str(edit["id"])

    def get_testers(self, edit_id: str, track: str) -> list[str]:
        try:
            testers = (
                self._edits()
                .testers()
                .get(packageName=self.package_name, editId=edit_id, track=track)
                .execute()
            )
        except HttpError as exc:
            # A track with no tester list yet reads as 404.
            if getattr(exc.resp, "status", None) == 404:
                return []
            raise
        return list(testers.get("googleGroups") or [])

    def update_testers(self, edit_id: str, track: str, testers: list[str]) -> None:
        (
            self._edits()
            .testers()
            .update(
                packageName=self.package_name,
                editId=edit_id,
                track=track,
                body={"googleGroups": testers},
            )
            .execute()
        )

    def commit_edit(self, edit_id: str) -> None:
        self._edits().commit(packageName=self.package_name, editId=edit_id).execute()

    def delete_edit(self, edit_id: str) -> None:
        self._edits().delete(packageName=self.package_name, editId=edit_id).execute()


def build_google_play_client(settings: Settings) -> TesterEditClient:
    return GooglePlayTesterClient(settings.google_service_account_file, settings.google_package_name)


class EnrollmentError(ActionError):
    """One step of the edit transaction failed; ``summary`` is the user-facing outcome message."""

    def __init__(self, message: str, *, summary: str) -> None:
        super().__init__(message)
        self.summary = summary


@dataclass(frozen=True)
class TesterEnrollment:
    email: str
    track: str
    already_present: bool


def _rollback(client: TesterEditClient, edit_id: str) -> None:
    try:
        client.delete_edit(edit_id)
    except GOOGLE_CLIENT_ERRORS as exc:
        logger.warning("tester_edit_rollback_failed edit_id=%s", edit_id, exc_info=exc)


def enroll_tester(client: TesterEditClient, email: str, track: str) -> TesterEnrollment:
    """Append ``email`` to the track's tester list inside a single edit transaction.

    Blocking; callers on the event loop should run it in a worker thread. Any step
    failure deletes the open edit (best effort) and raises EnrollmentError.
    """
    try:
        edit_id = client.open_edit()
    except GOOGLE_CLIENT_ERRORS as exc:
        raise EnrollmentError(f"Failed to create edit: {exc}", summary="Failed to create Google Play edit") from exc

    try:
        current = client.get_testers(edit_id, track)
    except GOOGLE_CLIENT_ERRORS as exc:
        _rollback(client, edit_id)
        raise EnrollmentError(f"Failed to read testers: {exc}", summary="Failed to read Google Play testers") from exc

    known = {item.strip().lower() for item in current}
    already_present = email.strip().lower() in known
    if not already_present:
        try:
            client.update_testers(edit_id, track, [*current, email])
        except GOOGLE_CLIENT_ERRORS as exc:
            _rollback(client, edit_id)
            raise EnrollmentError(
                f"Failed to update testers: {exc}", summary="Failed to update Google Play testers"
            ) from exc

    try:
        client.commit_edit(edit_id)
    except GOOGLE_CLIENT_ERRORS as exc:
        _rollback(client, edit_id)
        raise EnrollmentError(f"Failed to commit edit: {exc}", summary="Failed to commit Google Play changes") from exc

    return TesterEnrollment(email=email, track=track, already_present=already_present)
