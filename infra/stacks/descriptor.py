"""
Pure description of the stream-share deployment.

Everything here is plain data built from a validated config. The CDK construct in
stream_share_api_substack.py is the only consumer that turns it into resources, so
the permission scope and route table can be checked without synthesizing a stack.
"""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from stacks.config import StreamShareConfig
from stacks.identifiers import FormatError, StreamGroupId, validate_stream_group_id

SERVICE_NAMESPACE = "gameliftstreams"
APPLICATION_RESOURCE_PATTERN = f"arn:aws:{SERVICE_NAMESPACE}:*:*:application/*"

API_NAME = "GameLiftStreams Share Api"
API_DESCRIPTION = "API for the GameLiftStreams Share application"

ANY_METHOD = "ANY"
CATCH_ALL_SEGMENT = "{proxy+}"

CORS_ALLOW_HEADERS: Tuple[str, ...] = (
    "Content-Type",
    "X-Amz-Date",
    "Authorization",
    "X-Api-Key",
    "X-Amz-Security-Token",
)
# Same order as aws_cdk.aws_apigateway.Cors.ALL_METHODS.
CORS_ALL_METHODS: Tuple[str, ...] = ("OPTIONS", "GET", "PUT", "POST", "DELETE", "PATCH", "HEAD")
CORS_MAX_AGE_SECONDS = 24 * 60 * 60

SUCCESS_RESPONSE_HEADERS: Tuple[str, ...] = (
    "Content-Type",
    "Access-Control-Allow-Origin",
    "Access-Control-Allow-Headers",
    "Access-Control-Allow-Methods",
)


class StreamAction(str, Enum):
    START_STREAM_SESSION = "gameliftstreams:StartStreamSession"
    GET_STREAM_SESSION = "gameliftstreams:GetStreamSession"
    TERMINATE_STREAM_SESSION = "gameliftstreams:TerminateStreamSession"


@dataclass(frozen=True)
class PermissionGrant:
    actions: Tuple[str, ...]
    resources: Tuple[str, ...]
    effect: str = "Allow"

    def __post_init__(self) -> None:
        if not self.actions:
            raise ValueError("permission grant must name at least one action")
        if not self.resources:
            raise ValueError("permission grant must name at least one resource")


@dataclass(frozen=True)
class ResponseShape:
    status_code: str
    headers: Tuple[str, ...] = ()


@dataclass(frozen=True)
class RouteEntry:
    path: Tuple[str, ...]
    method: str
    responses: Tuple[ResponseShape, ...] = ()
    catch_all: bool = False

    def __post_init__(self) -> None:
        if self.catch_all:
            return
        codes = [r.status_code for r in self.responses]
        if "200" not in codes:
            raise ValueError(f"route {self.method} {self.path_string} must declare a 200 response")
        if not any(c[:1] in ("4", "5") for c in codes):
            raise ValueError(f"route {self.method} {self.path_string} must declare a 4xx or 5xx response")

    @property
    def path_string(self) -> str:
        return "/" + "/".join(self.path)

    def accepts(self, method: str) -> bool:
        return self.method == ANY_METHOD or self.method == method.upper()


@dataclass(frozen=True)
class CorsPolicy:
    allow_origins: Tuple[str, ...]
    allow_methods: Tuple[str, ...]
    allow_headers: Tuple[str, ...]
    max_age_seconds: int


@dataclass(frozen=True)
class ComputeUnitSpec:
    asset_path: str
    construct_id: str = "GameLiftStreamsServerLambda"
    handler: str = "server.handler"
    memory_mb: int = 512
    timeout_seconds: int = 300
    # API Gateway caps integrations at 29 seconds.
    integration_timeout_seconds: int = 29
    architecture: str = "arm64"
    tracing_enabled: bool = True
    log_retention_days: int = 30
    # (name, value) pairs, in declaration order.
    environment: Tuple[Tuple[str, str], ...] = ()


@dataclass(frozen=True)
class StageSpec:
    stage_name: str = "prod"
    logging_level: str = "INFO"
    data_trace_enabled: bool = True
    tracing_enabled: bool = True


@dataclass(frozen=True)
class InfrastructureDescriptor:
    compute_unit: ComputeUnitSpec
    grants: Tuple[PermissionGrant, ...]
    routes: Tuple[RouteEntry, ...]
    cors: CorsPolicy
    stage: StageSpec
    stream_group_id: StreamGroupId
    application_id: str
    api_name: str = API_NAME
    api_description: str = API_DESCRIPTION

    def __post_init__(self) -> None:
        if not isinstance(self.compute_unit, ComputeUnitSpec):
            raise ValueError("descriptor must contain exactly one compute unit")
        seen = set()
        for route in self.routes:
            if route.path in seen:
                raise ValueError(f"duplicate route path: {route.path_string}")
            seen.add(route.path)
        if sum(1 for r in self.routes if r.catch_all) > 1:
            raise ValueError("descriptor allows at most one catch-all route")


def _log_event(event_type: str, **fields: Any) -> None:
    payload: Dict[str, Any] = {"event": event_type}
    payload.update(fields)
    try:
        print(json.dumps(payload, separators=(",", ":"), sort_keys=True))
    except (TypeError, ValueError):
        print(f'{{"event":"{event_type}","log_error":"serialization_failed"}}')


def build_grants(stream_group_id: StreamGroupId) -> List[PermissionGrant]:
    # Application resources stay broad: application ids are not validated at this
    # layer. Only the stream group is pinned.
    return [
        PermissionGrant(
            actions=tuple(a.value for a in StreamAction),
            resources=(
                APPLICATION_RESOURCE_PATTERN,
                f"arn:aws:{SERVICE_NAMESPACE}:*:*:streamgroup/{stream_group_id}",
            ),
        )
    ]


def _standard_responses() -> Tuple[ResponseShape, ...]:
    return (
        ResponseShape("200", SUCCESS_RESPONSE_HEADERS),
        ResponseShape("400"),
        ResponseShape("500"),
    )


def build_routes(compute_unit: ComputeUnitSpec) -> List[RouteEntry]:
    """
    Fixed route table for the server function.

    Every route proxies to the same compute unit, so the unit is only taken to
    keep the call site explicit. The catch-all is always emitted last.
    """
    named = [
        RouteEntry((), ANY_METHOD, _standard_responses()),
        RouteEntry(("api", "CreateStreamSession"), "POST", _standard_responses()),
        RouteEntry(("api", "GetSignalResponse"), "POST", _standard_responses()),
        RouteEntry(("api", "DestroyStreamSession"), "POST", _standard_responses()),
    ]
    return named + [RouteEntry((CATCH_ALL_SEGMENT,), ANY_METHOD, catch_all=True)]


def build_cors_policy() -> CorsPolicy:
    return CorsPolicy(
        allow_origins=("*",),
        allow_methods=CORS_ALL_METHODS,
        allow_headers=CORS_ALLOW_HEADERS,
        max_age_seconds=CORS_MAX_AGE_SECONDS,
    )


def _split_path(path: str) -> Tuple[str, ...]:
    return tuple(seg for seg in path.split("?", 1)[0].split("/") if seg != "")


def match_route(routes: Sequence[RouteEntry], path: str, method: str) -> Optional[RouteEntry]:
    """
    Resolve a request against a route table with API Gateway precedence.

    A declared resource (or any parent of one) always beats the catch-all, no
    matter where the catch-all sits in `routes`. When that resource has no method
    for the verb the request does not fall through to the catch-all.
    """
    segments = _split_path(path)
    declared = [r for r in routes if not r.catch_all]

    resources = set()
    for r in declared:
        for i in range(len(r.path) + 1):
            resources.add(r.path[:i])

    if segments in resources:
        for r in declared:
            if r.path == segments and r.accepts(method):
                return r
        return None

    if segments:
        for r in routes:
            if r.catch_all and r.accepts(method):
                return r
    return None


def build_compute_unit(
    config: StreamShareConfig, stream_group_id: StreamGroupId
) -> ComputeUnitSpec:
    return ComputeUnitSpec(
        asset_path=config.server_asset_path,
        environment=(
            ("STREAM_GROUP_ID", stream_group_id),
            ("APPLICATION_ID", config.application_id),
            ("NODE_OPTIONS", "--enable-source-maps"),
        ),
    )


def assemble(config: StreamShareConfig) -> InfrastructureDescriptor:
    try:
        stream_group_id = validate_stream_group_id(config.stream_group_id)
    except FormatError as e:
        _log_event("stream_group_id_rejected", value=str(e.value), pattern=e.pattern)
        raise

    compute_unit = build_compute_unit(config, stream_group_id)
    descriptor = InfrastructureDescriptor(
        compute_unit=compute_unit,
        grants=tuple(build_grants(stream_group_id)),
        routes=tuple(build_routes(compute_unit)),
        cors=build_cors_policy(),
        stage=StageSpec(stage_name=config.stage_name),
        stream_group_id=stream_group_id,
        application_id=config.application_id,
    )
    _log_event(
        "descriptor_assembled",
        stream_group_id=stream_group_id,
        application_id=config.application_id,
        routes=[f"{r.method} {r.path_string}" for r in descriptor.routes],
        stage_name=config.stage_name,
    )
    return descriptor
