"""Records the lifecycle steps it receives in a response header."""

from __future__ import annotations

from keelson.plugins import POST_DISPATCH, PRE_DISPATCH, Plugin, step


class Recorder(Plugin):
    def init(self) -> None:
        self.seen: list[str] = []

    def _record(self, name: str) -> None:
        self.seen.append(name)
        self.response.headers["X-Recorder"] = ",".join(self.seen)

    @step(PRE_DISPATCH)
    def before(self) -> None:
        self._record(PRE_DISPATCH)

    @step(POST_DISPATCH)
    def after(self) -> None:
        self._record(POST_DISPATCH)

    @step
    def audit(self) -> None:
        self._record("audit")
