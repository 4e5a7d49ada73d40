"""Automation plan model and its rendering to the AF YAML format.

A plan produced here carries no jobs by default: running the environment
alone is enough for the automation framework to (re)create every context it
declares. Context definitions are read from ``Context.definition`` as filled
in by :class:`af_roundtrip.zap.session.ZapSessionService`.
"""

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from af_roundtrip.services import Context

# ZAP API method names -> AF method names
AUTH_METHODS = {
    "manualAuthentication": "manual",
    "httpAuthentication": "http",
    "formBasedAuthentication": "form",
    "jsonBasedAuthentication": "json",
    "scriptBasedAuthentication": "script",
    "clientScriptBasedAuthentication": "client",
    "browserBasedAuthentication": "browser",
    "autoDetectAuthentication": "autodetect",
}

SESSION_METHODS = {
    "cookieBasedSessionManagement": "cookie",
    "httpAuthSessionManagement": "http",
    "scriptBasedSessionManagement": "script",
    "headerBasedSessionManagement": "headers",
    "autoDetectSessionManagement": "autodetect",
}

# form/json authentication parameters are named differently in the AF
AUTH_PARAM_NAMES = {
    "loginUrl": "loginRequestUrl",
    "loginRequestData": "loginRequestBody",
}

DEFAULT_PARAMETERS = {
    "failOnError": True,
    "failOnWarning": False,
    "progressToStdout": True,
}

_QUOTED = re.compile(r"^\\Q(.*)\\E$")
_URL = re.compile(r"^https?://", re.IGNORECASE)


def url_from_regex(regex: str) -> Optional[str]:
    """Return the URL an include regex such as ``https://example.com.*`` covers.

    Both plain and ``\\Q...\\E`` quoted prefixes are understood; anything that
    does not reduce to a literal http(s) URL returns None.
    """
    if not regex.endswith(".*"):
        return None
    prefix = regex[:-2]
    quoted = _QUOTED.match(prefix)
    if quoted:
        prefix = quoted.group(1)
    else:
        prefix = prefix.replace("\\.", ".")
        if re.search(r"[\\^$*+?()\[\]{}|]", prefix):
            return None
    if not _URL.match(prefix):
        return None
    return prefix


def _authentication(definition: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    method = definition.get("authentication")
    if not method or not method.get("methodName"):
        return None
    name = method["methodName"]
    af_method = AUTH_METHODS.get(name, name)
    if af_method == "manual":
        return None

    parameters = {}
    for key, value in method.items():
        if key == "methodName" or value in (None, ""):
            continue
        if af_method in ("form", "json"):
            key = AUTH_PARAM_NAMES.get(key, key)
        parameters[key] = value

    auth: Dict[str, Any] = {"method": af_method}
    if parameters:
        auth["parameters"] = parameters

    logged_in = definition.get("loggedInIndicator")
    logged_out = definition.get("loggedOutIndicator")
    if logged_in or logged_out:
        verification = {"method": "response"}
        if logged_in:
            verification["loggedInRegex"] = logged_in
        if logged_out:
            verification["loggedOutRegex"] = logged_out
        auth["verification"] = verification
    return auth


def _session_management(definition: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    method = definition.get("sessionManagement")
    if not method or not method.get("methodName"):
        return None
    name = method["methodName"]
    result: Dict[str, Any] = {"method": SESSION_METHODS.get(name, name)}
    parameters = {
        k: v for k, v in method.items() if k != "methodName" and v not in (None, "")
    }
    if parameters:
        result["parameters"] = parameters
    return result


def _users(definition: Dict[str, Any]) -> List[Dict[str, Any]]:
    users = []
    for user in definition.get("users", []):
        credentials = {
            k: v
            for k, v in (user.get("credentials") or {}).items()
            if k != "type" and v not in (None, "")
        }
        entry: Dict[str, Any] = {"name": user["name"]}
        if credentials:
            entry["credentials"] = credentials
        users.append(entry)
    return users


def context_to_env(context: Context) -> Dict[str, Any]:
    """Describe a context the way an AF ``env.contexts`` entry does."""
    definition = context.definition
    include = list(definition.get("includeRegexs", []))
    exclude = list(definition.get("excludeRegexs", []))

    urls = []
    url_regexes = set()
    for regex in include:
        url = url_from_regex(regex)
        if url:
            url_regexes.add(regex)
            if url not in urls:
                urls.append(url)
    # urls are added back as "<url>.*" when the plan runs
    include_paths = [r for r in include if r not in url_regexes]

    entry: Dict[str, Any] = {"name": context.name, "urls": urls}
    if include_paths:
        entry["includePaths"] = include_paths
    if exclude:
        entry["excludePaths"] = exclude

    excluded_tech = definition.get("excludedTechnologies") or []
    if excluded_tech:
        entry["technology"] = {"exclude": list(excluded_tech)}

    auth = _authentication(definition)
    if auth:
        entry["authentication"] = auth
    session_management = _session_management(definition)
    if session_management:
        entry["sessionManagement"] = session_management
    users = _users(definition)
    if users:
        entry["users"] = users
    return entry


@dataclass
class PlanEnvironment:
    """The ``env`` section of a plan: the contexts it operates against."""

    contexts: List[Context] = field(default_factory=list)
    parameters: Dict[str, Any] = field(default_factory=lambda: dict(DEFAULT_PARAMETERS))

    def add_context(self, context: Context) -> None:
        # a later context with the same name replaces the earlier one
        self.contexts = [c for c in self.contexts if c.name != context.name]
        self.contexts.append(context)

    def get_context(self, name: str) -> Optional[Context]:
        for context in self.contexts:
            if context.name == name:
                return context
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "contexts": [context_to_env(c) for c in self.contexts],
            "parameters": dict(self.parameters),
        }


@dataclass
class AutomationPlan:
    """An automation plan: an environment plus an ordered list of jobs."""

    name: str
    env: PlanEnvironment = field(default_factory=PlanEnvironment)
    jobs: List[Dict[str, Any]] = field(default_factory=list)
    file_path: Optional[Path] = None  # set on registration
    plan_id: Optional[str] = None  # set when run

    def to_dict(self) -> Dict[str, Any]:
        return {"env": self.env.to_dict(), "jobs": [dict(j) for j in self.jobs]}

    def to_yaml(self) -> str:
        return yaml.safe_dump(self.to_dict(), default_flow_style=False, sort_keys=False)
