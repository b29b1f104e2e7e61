from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Mapping, Optional

DEFAULT_STREAM_GROUP_ID = "sg-000000000"
DEFAULT_APPLICATION_ID = "a-000000000"
DEFAULT_STAGE_NAME = "prod"
DEFAULT_SERVER_ASSET_PATH = Path(__file__).resolve().parents[2] / "server"


@dataclass(frozen=True)
class StreamShareConfig:
    stream_group_id: str = DEFAULT_STREAM_GROUP_ID
    application_id: str = DEFAULT_APPLICATION_ID
    account: Optional[str] = None
    region: Optional[str] = None
    stage_name: str = DEFAULT_STAGE_NAME
    server_asset_path: str = str(DEFAULT_SERVER_ASSET_PATH)


def _first_set(*values: Any) -> Optional[str]:
    for v in values:
        if v is None:
            continue
        s = str(v).strip()
        if s != "":
            return s
    return None


def load_config(
    environ: Mapping[str, str],
    context: Optional[Callable[[str], Any]] = None,
) -> StreamShareConfig:
    """
    Build the deployment config once, at the edge of the CDK app.

    `context` is a lookup such as `app.node.try_get_context`; a context value
    wins over the matching environment variable. Account and region are passed
    through untouched for the CDK environment.
    """
    ctx = context or (lambda key: None)

    return StreamShareConfig(
        stream_group_id=_first_set(ctx("stream_group_id"), environ.get("STREAM_GROUP_ID"))
        or DEFAULT_STREAM_GROUP_ID,
        application_id=_first_set(ctx("application_id"), environ.get("APPLICATION_ID"))
        or DEFAULT_APPLICATION_ID,
        account=_first_set(environ.get("CDK_DEFAULT_ACCOUNT")),
        region=_first_set(environ.get("CDK_DEFAULT_REGION")),
        stage_name=_first_set(ctx("stage_name"), environ.get("STREAM_SHARE_STAGE_NAME"))
        or DEFAULT_STAGE_NAME,
        server_asset_path=_first_set(
            ctx("server_asset_path"), environ.get("STREAM_SHARE_SERVER_PATH")
        )
        or str(DEFAULT_SERVER_ASSET_PATH),
    )
