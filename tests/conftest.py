"""Shared fixtures: an in-process registry served through httpx.MockTransport."""

import json
from pathlib import Path

import httpx
import pytest
from kitn_components import Project
from kitn_components import RegistryFetcher
from kitn_components import SlotAction
from kitn_components.schema import TYPE_TO_DIR
from kitn_components.schema import ComponentType

NAMESPACES = ("@kitn", "@acme")


def component(name: str, type: str = "tool", content: str | None = None, **extra) -> dict:
    """Registry document for a single-file component (packages ship <name>/index.ts)."""
    component_type = ComponentType.parse(type)
    if component_type == ComponentType.PACKAGE:
        path = f"{name}/index.ts"
    else:
        path = f"{TYPE_TO_DIR[component_type]}/{name}.ts"
    if content is None:
        content = f'export const {name.replace("-", "_")} = "{name}";\n'
    return {
        "name": name,
        "type": f"kitn:{type}",
        "description": f"The {name} component",
        "version": "1.0.0",
        "files": [{"path": path, "content": content}],
        **extra,
    }


class FakeRegistry:
    """Registries for @kitn and @acme, keyed by host ("kitn.test", "acme.test")."""

    def __init__(self):
        self.items: dict[str, list[dict]] = {namespace: [] for namespace in NAMESPACES}
        self.requests: list[str] = []
        self.unavailable: set[str] = set()

    def add(self, item: dict, namespace: str = "@kitn") -> dict:
        self.items[namespace].append(item)
        return item

    def url_template(self, namespace: str) -> str:
        return f"https://{namespace.removeprefix('@')}.test/r/{{type}}/{{name}}.json"

    def registries(self) -> dict[str, str]:
        return {namespace: self.url_template(namespace) for namespace in NAMESPACES}

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(str(request.url))
        namespace = "@" + request.url.host.removesuffix(".test")
        if namespace in self.unavailable or namespace not in self.items:
            return httpx.Response(503)

        items = self.items[namespace]
        if request.url.path == "/r/registry.json":
            index = [
                {
                    "name": item["name"],
                    "type": item["type"],
                    "description": item.get("description", ""),
                    "version": item.get("version"),
                    "registryDependencies": item.get("registryDependencies", []),
                }
                for item in items
            ]
            return httpx.Response(200, json={"version": "1.0", "items": index})

        _, _, type_dir, file_name = request.url.path.split("/")
        name = file_name.removesuffix(".json").partition("@")[0]
        for item in items:
            if item["name"] == name and TYPE_TO_DIR[ComponentType.parse(item["type"])] == type_dir:
                return httpx.Response(200, json=item)
        return httpx.Response(404)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    def fetcher(self) -> RegistryFetcher:
        return RegistryFetcher(self.registries(), client=self.client())


class RecordingPrompter:
    """Prompter with scripted answers that records every question."""

    def __init__(self, overwrite: bool = False, slot_action: str = "replace", choice: int = 0):
        self.overwrite = overwrite
        self.slot_action = slot_action
        self.choice = choice
        self.overwrite_questions: list[str] = []
        self.slot_conflicts: list = []
        self.choices: list[list] = []

    def choose_component(self, requested, candidates):
        self.choices.append(candidates)
        return candidates[self.choice]

    def confirm_overwrite(self, display_path, diff):
        self.overwrite_questions.append(display_path)
        return self.overwrite

    def resolve_slot_conflict(self, conflict):
        self.slot_conflicts.append(conflict)
        return SlotAction(self.slot_action)

    def select_orphans(self, orphans):
        return list(orphans)


@pytest.fixture
def registry() -> FakeRegistry:
    return FakeRegistry()


@pytest.fixture
def prompter() -> RecordingPrompter:
    return RecordingPrompter()


def write_project_config(root: Path, registry: FakeRegistry, **extra) -> None:
    data = {"runtime": "bun", "registries": registry.registries(), **extra}
    (root / "kitn.json").write_text(json.dumps(data, indent=2), encoding="utf-8")


@pytest.fixture
def project(tmp_path: Path, registry: FakeRegistry) -> Project:
    write_project_config(tmp_path, registry)
    return Project.load(tmp_path)

