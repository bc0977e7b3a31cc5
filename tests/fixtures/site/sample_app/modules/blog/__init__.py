"""The Blog module: partial views, nested action views and failures."""

from __future__ import annotations

from keelson.module import Module, action

POSTS = ("Hello world", "Second post")


class Blog(Module):
    def init(self) -> None:
        self.view.owner = "sample"

    def pre_execute(self) -> None:
        source = self.data_sources.get()
        if not source.rows:
            for title in POSTS:
                source.insert_one({"title": title})

    @action("list")
    def list_posts(self) -> None:
        source = self.data_sources.get()
        self.view.posts = [source.select_one({"id": key}) for key in sorted(source.rows)]
        self.partial_data("sidebar").title = "Archives"
        self.action_data("latest").get["count"] = "5"

    @action
    def latest(self) -> None:
        self.view.count = self.request.get("count", "uint", 3)

    @action
    def show(self) -> None:
        post = self.data_sources.get().select_one({"id": self.request.get("id", "uint", 0)})
        if post is None:
            self.response.set_http_status_code(404, "Post not found")
        self.view.post = post

    @action
    def embed(self) -> None:
        self.view.kind = "embed"

    @action
    def plain(self) -> None:
        self.disable_layout_rendering()

    @action
    def raw(self) -> None:
        self.disable_action_rendering()
        self.response.content = "raw body"

    @action
    def minimal(self) -> None:
        self.set_layout_name("Minimal")
        self.set_view_name("plain")

    @action
    def escape(self) -> None:
        self.view.snippet = "<script>alert(1)</script>"

    @action
    def broken(self) -> None:
        raise ValueError("boom")

    @action
    def nowhere(self) -> None:
        self.set_view_name("missing")
