import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union


_MISSING = object()

CredResolver = Callable[[str, Optional[str]], Awaitable[Dict[str, Any]]]


class ExecutionError(Exception):
    ...


class Context:
    """What the host hands a node for one execution or load-options pass."""

    def __init__(
        self,
        http,
        logger,
        cred_resolver: CredResolver,
        parameters: Union[Dict[str, Any], List[Dict[str, Any]], None] = None,
        items: Optional[List[Dict[str, Any]]] = None,
        continue_on_fail: bool = False,
        credential_id: Optional[str] = None,
    ):
        self.http = http
        self.log = logger or logging.getLogger("glide_nodes").info
        self.cred_resolver = cred_resolver
        self.parameters = parameters if parameters is not None else {}
        self.items = items if items is not None else [{}]
        self._continue_on_fail = continue_on_fail
        self.credential_id = credential_id

    def get_input_data(self) -> List[Dict[str, Any]]:
        return self.items

    def continue_on_fail(self) -> bool:
        return self._continue_on_fail

    def get_node_parameter(self, name: str, index: int = 0, default: Any = _MISSING) -> Any:
        params = self.parameters
        if isinstance(params, list):
            # per-item parameters, last entry covers the rest
            params = params[min(index, len(params) - 1)] if params else {}
        if name in params and params[name] is not None:
            return params[name]
        if default is not _MISSING:
            return default
        raise ExecutionError(f"Could not get parameter '{name}'")

    async def get_credentials(self, name: str) -> Dict[str, Any]:
        creds = await self.cred_resolver(name, self.credential_id)
        if not creds:
            raise ExecutionError(f"Node does not have any credentials set for '{name}'")
        return creds


def _node_types() -> Dict[str, Any]:
    from .node import GlideNode

    return {GlideNode.description.name: GlideNode}


def node_type_names() -> List[str]:
    return sorted(_node_types())


def get_node_type(name: str):
    cls = _node_types().get(name)
    if cls is None:
        raise ExecutionError(f"Unknown node type '{name}'")
    return cls()


async def run_node(name: str, ctx: Context) -> List[Dict[str, Any]]:
    return await get_node_type(name).execute(ctx)


async def load_options(name: str, method: str, ctx: Context) -> List[Dict[str, Any]]:
    node = get_node_type(name)
    fn = node.load_options_methods().get(method)
    if fn is None:
        raise ExecutionError(f"Node '{name}' has no load-options method '{method}'")
    return [o.model_dump(exclude_none=True) for o in await fn(ctx)]
