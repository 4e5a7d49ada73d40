"""Context management against the active ZAP session."""

from pathlib import Path
from typing import Any, Dict, List, Optional

from af_roundtrip.exceptions import ContextNotFoundError, ZapApiError
from af_roundtrip.logging_config import get_logger
from af_roundtrip.services import Context, PathLike
from af_roundtrip.zap.client import ZapApiClient, parse_list, unwrap

logger = get_logger("zap.session")


def _absolute(path: PathLike) -> str:
    return str(Path(path).absolute())


class ZapSessionService:
    """SessionService backed by the ``context``, ``authentication``,
    ``sessionManagement`` and ``users`` API components."""

    def __init__(self, client: ZapApiClient):
        self.client = client

    def context_names(self) -> List[str]:
        return parse_list(self.client.view("context", "contextList").get("contextList"))

    def import_context(self, path: PathLike) -> Context:
        result = self.client.action("context", "importContext", contextFile=_absolute(path))
        try:
            context_id = str(result["contextId"])
        except KeyError:
            raise ZapApiError(f"importContext returned no context id: {result!r}")
        name = self._name_for_id(context_id)
        logger.debug(
            f"Imported {path} as context '{name}' (id {context_id})",
            extra={"context_name": name, "context_id": context_id},
        )
        return self.get_context(name)

    def _name_for_id(self, context_id: str) -> str:
        for name in self.context_names():
            info = self._context_info(name)
            if str(info.get("id")) == context_id:
                return name
        raise ContextNotFoundError(
            f"Imported context {context_id} is not in the session", code="context_not_found"
        )

    def _context_info(self, name: str) -> Dict[str, Any]:
        return unwrap(self.client.view("context", "context", contextName=name), "context")

    def get_context(self, name: str) -> Context:
        info = self._context_info(name)
        context_id = str(info.get("id")) if info.get("id") is not None else None
        return Context(
            name=info.get("name", name),
            id=context_id,
            definition=self._definition(name, context_id, info),
        )

    def _definition(self, name: str, context_id: Optional[str], info: Dict[str, Any]) -> Dict[str, Any]:
        definition: Dict[str, Any] = {
            "description": info.get("description") or "",
            "inScope": str(info.get("inScope", "true")).lower() == "true",
            "includeRegexs": parse_list(info.get("includeRegexs")),
            "excludeRegexs": parse_list(info.get("excludeRegexs")),
            "includedTechnologies": parse_list(
                self.client.view("context", "includedTechnologyList", contextName=name)
                .get("includedTechnologyList")
            ),
            "excludedTechnologies": parse_list(
                self.client.view("context", "excludedTechnologyList", contextName=name)
                .get("excludedTechnologyList")
            ),
        }
        if context_id is None:
            return definition

        auth = self.client.view("authentication", "getAuthenticationMethod", contextId=context_id)
        definition["authentication"] = unwrap(auth, "method")
        definition["loggedInIndicator"] = self.client.view(
            "authentication", "getLoggedInIndicator", contextId=context_id
        ).get("logged_in_regex") or None
        definition["loggedOutIndicator"] = self.client.view(
            "authentication", "getLoggedOutIndicator", contextId=context_id
        ).get("logged_out_regex") or None

        session_management = self.client.view(
            "sessionManagement", "getSessionManagementMethod", contextId=context_id
        )
        definition["sessionManagement"] = unwrap(session_management, "method")
        definition["users"] = self._users(context_id)
        return definition

    def _users(self, context_id: str) -> List[Dict[str, Any]]:
        users = []
        for user in self.client.view("users", "usersList", contextId=context_id).get("usersList", []):
            credentials = self.client.view(
                "users",
                "getAuthenticationCredentials",
                contextId=context_id,
                userId=user["id"],
            )
            users.append(
                {
                    "id": str(user["id"]),
                    "name": user["name"],
                    "enabled": str(user.get("enabled", "true")).lower() == "true",
                    "credentials": unwrap(credentials, "credentials"),
                }
            )
        return users

    def delete_context(self, context: Context) -> None:
        self.client.action("context", "removeContext", contextName=context.name)
        logger.debug(f"Removed context '{context.name}'", extra={"context_name": context.name})

    def export_context(self, context: Context, out_path: PathLike) -> None:
        self.client.action(
            "context",
            "exportContext",
            contextName=context.name,
            contextFile=_absolute(out_path),
        )
