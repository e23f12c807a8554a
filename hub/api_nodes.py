from fastapi import APIRouter, HTTPException
from pydantic import BaseModel
import httpx
import logging
from typing import Optional, Union
from glide_nodes.credentials import get_credential_type, verify_credential
from glide_nodes.errors import GlideNodeError, NotFound, UpstreamError
from glide_nodes.runtime import Context, ExecutionError, get_node_type, load_options, node_type_names, run_node


router = APIRouter(prefix="/api/nodes")
logger = logging.getLogger(__name__)


class NodeIn(BaseModel):
    node: str = "glide"
    parameters: Union[dict, list[dict]] = {}
    credentials: dict[str, dict] = {}


class ExecuteIn(NodeIn):
    items: list[dict] = [{}]
    continue_on_fail: bool = False


class CredentialTestIn(BaseModel):
    type: str
    data: dict = {}


def _resolver(credentials: dict[str, dict]):
    async def resolve(name: str, credential_id: Optional[str]):
        return credentials.get(name) or {}

    return resolve


def _status_for(err: Exception) -> int:
    if isinstance(err, NotFound):
        return 404
    if isinstance(err, UpstreamError):
        return 502
    return 400


@router.get("")
def api_list_nodes():
    return [get_node_type(n).description.model_dump(exclude_none=True) for n in node_type_names()]


@router.get("/{name}")
def api_describe_node(name: str):
    try:
        node = get_node_type(name)
    except ExecutionError as e:
        raise HTTPException(404, str(e))
    return node.description.model_dump(exclude_none=True)


@router.post("/options/{method}")
async def api_load_options(method: str, body: NodeIn):
    async with httpx.AsyncClient() as http:
        ctx = Context(http=http, logger=logger.info, cred_resolver=_resolver(body.credentials), parameters=body.parameters)
        try:
            return await load_options(body.node, method, ctx)
        except ExecutionError as e:
            raise HTTPException(404, str(e))


@router.post("/execute")
async def api_execute(body: ExecuteIn):
    async with httpx.AsyncClient() as http:
        ctx = Context(
            http=http,
            logger=logger.info,
            cred_resolver=_resolver(body.credentials),
            parameters=body.parameters,
            items=body.items,
            continue_on_fail=body.continue_on_fail,
        )
        try:
            return {"items": await run_node(body.node, ctx)}
        except (GlideNodeError, ExecutionError) as e:
            raise HTTPException(_status_for(e), str(e))


@router.post("/credentials/test")
async def api_test_credential(body: CredentialTestIn):
    try:
        cred_type = get_credential_type(body.type)
        credential = cred_type.load(body.data)
    except GlideNodeError as e:
        raise HTTPException(400, str(e))
    async with httpx.AsyncClient() as http:
        return await verify_credential(cred_type, credential, http)
