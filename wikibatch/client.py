#!/usr/bin/env python3
"""
Action client: one mutating API call at a time, classified.

Every call gets the session's write token attached. If the wiki says the
token expired, the client renews it (once, shared with any other worker that
hit the same expiry) and replays the call. Everything else is classified and
handed back; retrying is the dispatcher's job.

Usage:
    from wikibatch.client import ActionClient, delete_call

    client = ActionClient(session)
    outcome = client.execute(delete_call("File:Foo.jpg", "Copyright violation"))
    if outcome.is_retryable:
        ...
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

import requests

from wikibatch.actions import EditMode
from wikibatch.errors import CallConstructionError, TokenError
from wikibatch.namespaces import NamespaceResolver
from wikibatch.outcome import ActionOutcome
from wikibatch.session import Session
from wikibatch.transport import TransportResponse

TOKEN_EXPIRED_CODES = frozenset({"badtoken", "notoken"})

RETRYABLE_CODES = frozenset({
    "ratelimited",
    "actionthrottled",
    "maxlag",
    "readonly",
    "stashfailed",
    "backend-fail-internal",
})

# Parameters each action cannot do without
REQUIRED_PARAMS = {
    "edit": ("title",),
    "delete": ("title",),
    "purge": ("titles",),
    "move": ("from", "to"),
    "upload": ("filename",),
}

EDIT_PARAM = {
    EditMode.REPLACE: "text",
    EditMode.PREPEND: "prependtext",
    EditMode.APPEND: "appendtext",
}


@dataclass
class ApiCall:
    """One low-level write request, minus the token."""

    action: str
    params: dict = field(default_factory=dict)
    files: Optional[dict] = None
    description: str = ""

    def __str__(self) -> str:
        return self.description or self.action


def edit_call(
    title: str,
    content: str,
    summary: str = "",
    mode: EditMode = EditMode.REPLACE,
    nocreate: bool = False,
) -> ApiCall:
    params = {
        "title": title,
        EDIT_PARAM[mode]: content,
        "summary": summary,
        "bot": "1",
    }
    if nocreate:
        params["nocreate"] = "1"
    return ApiCall("edit", params, description=f"edit ({mode.value}) {title}")


def delete_call(title: str, reason: str = "") -> ApiCall:
    return ApiCall("delete", {"title": title, "reason": reason}, description=f"delete {title}")


def purge_call(titles) -> ApiCall:
    titles = list(titles)
    return ApiCall(
        "purge",
        {"titles": "|".join(titles), "forcelinkupdate": "1"},
        description=f"purge {len(titles)} page(s)",
    )


def move_call(
    title: str,
    target: str,
    reason: str = "",
    move_talk: bool = True,
    leave_redirect: bool = True,
) -> ApiCall:
    params = {"from": title, "to": target, "reason": reason}
    if move_talk:
        params["movetalk"] = "1"
    if not leave_redirect:
        params["noredirect"] = "1"
    return ApiCall("move", params, description=f"move {title} -> {target}")


def upload_chunk_call(
    filename: str,
    chunk: bytes,
    offset: int,
    filesize: int,
    filekey: Optional[str] = None,
) -> ApiCall:
    """Append one chunk to the stash. The first chunk goes without a filekey."""
    params = {
        "filename": filename,
        "filesize": str(filesize),
        "offset": str(offset),
        "stash": "1",
        "ignorewarnings": "1",
    }
    if filekey:
        params["filekey"] = filekey
    return ApiCall(
        "upload",
        params,
        files={"chunk": ("chunk", chunk, "application/octet-stream")},
        description=f"upload chunk {filename} @{offset}/{filesize}",
    )


def upload_finalize_call(filename: str, filekey: str, description: str, summary: str) -> ApiCall:
    """Publish a stashed file as a new file page revision."""
    return ApiCall(
        "upload",
        {
            "filename": filename,
            "filekey": filekey,
            "text": description,
            "comment": summary,
            "ignorewarnings": "1",
        },
        description=f"upload finalize {filename}",
    )


class ActionClient:
    """Execute single write calls against one Session."""

    def __init__(
        self,
        session: Session,
        resolver: Optional[NamespaceResolver] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.session = session
        self.resolver = resolver or NamespaceResolver()
        self.logger = logger or logging.getLogger(__name__)

    def execute(self, call: ApiCall) -> ActionOutcome:
        """
        Send one call and classify what came back.

        Args:
            call: The request to make (see the *_call builders)

        Returns:
            ActionOutcome; expected remote rejections never raise

        Raises:
            CallConstructionError: if the call is malformed
        """
        self._validate(call)

        try:
            token = self.session.token
        except TokenError as e:
            return ActionOutcome.fatal(str(e), code="notoken")
        except requests.RequestException as e:
            return ActionOutcome.retryable(f"token fetch failed: {e}", code="http")

        outcome = self._send(call, token)
        if outcome.code not in TOKEN_EXPIRED_CODES:
            return outcome

        self.logger.debug(f"Token expired during {call}; renewing")
        try:
            token = self.session.renew_token(token)
        except TokenError as e:
            return ActionOutcome.fatal(str(e), code="notoken")
        except requests.RequestException as e:
            return ActionOutcome.retryable(f"token renewal failed: {e}", code="http")

        outcome = self._send(call, token)
        if outcome.code in TOKEN_EXPIRED_CODES:
            return ActionOutcome.fatal(f"write token rejected after renewal: {outcome.cause}", code=outcome.code)
        return outcome

    def _validate(self, call: ApiCall):
        required = REQUIRED_PARAMS.get(call.action)
        if required is None:
            raise CallConstructionError(f"Unsupported action: {call.action!r}")

        missing = [name for name in required if not call.params.get(name)]
        if missing:
            raise CallConstructionError(f"{call.action} call missing {', '.join(missing)}")

        if call.action == "edit" and not any(p in call.params for p in EDIT_PARAM.values()):
            raise CallConstructionError("edit call has no text, prependtext or appendtext")

        if call.action == "upload":
            has_chunk = call.files is not None and "chunk" in call.files
            if not has_chunk and not call.params.get("filekey"):
                raise CallConstructionError("upload call needs a chunk or a filekey")

    def _send(self, call: ApiCall, token: str) -> ActionOutcome:
        params = dict(call.params)
        params["action"] = call.action
        params["token"] = token

        try:
            response = self.session.transport.post(params, files=call.files)
        except requests.Timeout as e:
            self.logger.warning(f"Timed out: {call}: {e}")
            return ActionOutcome.retryable(f"timeout: {e}", code="timeout")
        except requests.RequestException as e:
            self.logger.warning(f"Network error: {call}: {e}")
            return ActionOutcome.retryable(f"network error: {e}", code="http")

        return self._classify(call, response)

    def _classify(self, call: ApiCall, response: TransportResponse) -> ActionOutcome:
        status = response.status_code
        if status == 429 or status >= 500:
            return ActionOutcome.retryable(
                f"HTTP {status}", code=f"http-{status}", retry_after=response.retry_after
            )
        if status >= 400:
            return ActionOutcome.fatal(f"HTTP {status}", code=f"http-{status}")

        data = response.data
        if data is None:
            return ActionOutcome.retryable("response was not JSON", code="badjson")

        if "warnings" in data:
            self.logger.debug(f"API warnings for {call}: {data['warnings']}")

        error = data.get("error")
        if error:
            code = error.get("code", "unknown")
            info = error.get("info", code)
            if code in TOKEN_EXPIRED_CODES:
                return ActionOutcome.retryable(info, code=code)
            if code in RETRYABLE_CODES or code.startswith("internal_api_error"):
                return ActionOutcome.retryable(info, code=code, retry_after=response.retry_after)
            return ActionOutcome.fatal(info, code=code)

        return self._check_result(call, data)

    def _check_result(self, call: ApiCall, data: dict) -> ActionOutcome:
        if call.action == "edit":
            result = data.get("edit", {}).get("result")
            if result == "Success":
                return ActionOutcome.success(data)
            return ActionOutcome.fatal(f"edit result was {result!r}", code="editfailed")

        if call.action == "upload":
            upload = data.get("upload", {})
            result = upload.get("result")
            if result in ("Continue", "Success"):
                return ActionOutcome.success(data)
            if result == "Warning":
                return ActionOutcome.fatal(f"upload warnings: {upload.get('warnings')}", code="uploadwarning")
            return ActionOutcome.fatal(f"upload result was {result!r}", code="uploadfailed")

        if call.action == "purge" and "purge" in data:
            skipped = [p.get("title") for p in data["purge"] if "missing" in p or "invalid" in p]
            if skipped:
                self.logger.warning(f"Purge skipped {len(skipped)} missing/invalid page(s): {skipped}")
            return ActionOutcome.success(data)

        if call.action in data:
            return ActionOutcome.success(data)

        return ActionOutcome.fatal(f"unexpected response to {call}", code="badresponse")
