"""The Home module: the landing page of the sample project."""

from __future__ import annotations

from keelson.module import Module, action


class Home(Module):
    @action
    def default(self) -> None:
        self.layout.description = "A small MVC framework"
        self.view.message = "Welcome to your new project."

    @action("greet")
    def greet_visitor(self) -> None:
        name = self.request.get("name", "string", "stranger")
        self.view.message = self.helper("greeting").greet(name)
