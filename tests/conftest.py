import json
import pytest
from pathlib import Path
from unittest.mock import Mock

from af_roundtrip.exceptions import ContextNotFoundError
from af_roundtrip.plan import AutomationPlan
from af_roundtrip.services import Context, PlanProgress
from af_roundtrip.zap.client import ZapApiClient


BASIC_AUTH_CONTEXT = """<?xml version="1.0" encoding="UTF-8" standalone="no"?>
<configuration>
    <context>
        <name>basic-auth.context</name>
        <incregexes>https://example.com.*</incregexes>
        <authentication><type>1</type></authentication>
    </context>
</configuration>
"""

FORM_AUTH_CONTEXT = """<?xml version="1.0" encoding="UTF-8" standalone="no"?>
<configuration>
    <context>
        <name>form-auth.context</name>
        <incregexes>https://example.org.*</incregexes>
        <authentication><type>2</type></authentication>
    </context>
</configuration>
"""


class FakeSession:
    """In-memory session: a context is named after its file and exports its file contents."""

    def __init__(self, fail_on=None):
        self.contexts = {}
        self.calls = []
        self.fail_on = fail_on or set()

    def import_context(self, path):
        path = Path(path)
        self.calls.append(("import", path.name))
        if path.name in self.fail_on:
            raise ValueError(f"Malformed context file {path.name}")
        ctx = Context(name=path.name, id=str(len(self.contexts) + 1),
                      definition={"body": path.read_text()})
        self.contexts[ctx.name] = ctx
        return ctx

    def delete_context(self, context):
        self.calls.append(("delete", context.name))
        if context.name not in self.contexts:
            raise ContextNotFoundError(f"No context {context.name}", code="context_not_found")
        del self.contexts[context.name]

    def get_context(self, name):
        self.calls.append(("get", name))
        if name not in self.contexts:
            raise ContextNotFoundError(f"No context {name}", code="context_not_found")
        return self.contexts[name]

    def export_context(self, context, out_path):
        self.calls.append(("export", context.name))
        Path(out_path).write_text(context.definition["body"])


class FakePlans:
    """Plan service whose runs recreate every context in the plan environment."""

    def __init__(self, session, recreate=True):
        self.session = session
        self.recreate = recreate
        self.registered = []
        self.runs = []

    def create_plan(self):
        return AutomationPlan(name=f"plan-{len(self.registered) + 1}")

    def register_plan(self, plan):
        self.registered.append(plan)

    def run_plan(self, plan, wait=True):
        assert plan in self.registered
        self.runs.append((plan, wait))
        if self.recreate:
            for ctx in plan.env.contexts:
                self.session.contexts[ctx.name] = Context(
                    name=ctx.name, id="recreated", definition=dict(ctx.definition)
                )
        return PlanProgress(plan_id=plan.name, started="now", finished="now")


@pytest.fixture
def make_response():
    """Build mock requests responses."""

    def _make(payload=None, status_code=200, text=None):
        response = Mock()
        response.status_code = status_code
        if payload is None:
            response.json.side_effect = ValueError("Expecting value")
            response.text = text or ""
        else:
            response.json.return_value = payload
            response.text = json.dumps(payload)
        return response

    return _make


@pytest.fixture
def http_session():
    """Mock requests.Session."""
    session = Mock()
    session.headers = {}
    return session


@pytest.fixture
def zap_client(http_session):
    return ZapApiClient("http://zap:8080/", api_key="secret", session=http_session)


@pytest.fixture
def context_dir(tmp_path):
    """Input directory with the basic-auth and form-auth fixtures."""
    directory = tmp_path / "contexts"
    directory.mkdir()
    (directory / "basic-auth.context").write_text(BASIC_AUTH_CONTEXT)
    (directory / "form-auth.context").write_text(FORM_AUTH_CONTEXT)
    return directory


@pytest.fixture
def output_dir(tmp_path):
    directory = tmp_path / "output"
    directory.mkdir()
    return directory


@pytest.fixture
def fake_session():
    return FakeSession()


@pytest.fixture
def fake_plans(fake_session):
    return FakePlans(fake_session)


@pytest.fixture
def make_session():
    return FakeSession


@pytest.fixture
def make_plans():
    return FakePlans
