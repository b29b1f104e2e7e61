from pathlib import Path
from typing import Optional

import aws_cdk as cdk
from aws_cdk import CfnOutput, Duration, RemovalPolicy, Stack
from aws_cdk import aws_apigateway as apigw
from aws_cdk import aws_iam as iam
from aws_cdk import aws_lambda as lambda_
from aws_cdk import aws_logs as logs
from constructs import Construct

from stacks.descriptor import ComputeUnitSpec, InfrastructureDescriptor, RouteEntry
from stacks.instructions import format_instructions

_ARCHITECTURES = {
    "arm64": lambda_.Architecture.ARM_64,
    "x86_64": lambda_.Architecture.X86_64,
}

_RETENTION = {
    7: logs.RetentionDays.ONE_WEEK,
    14: logs.RetentionDays.TWO_WEEKS,
    30: logs.RetentionDays.ONE_MONTH,
    90: logs.RetentionDays.THREE_MONTHS,
}

_LOGGING_LEVELS = {
    "OFF": apigw.MethodLoggingLevel.OFF,
    "ERROR": apigw.MethodLoggingLevel.ERROR,
    "INFO": apigw.MethodLoggingLevel.INFO,
}


def _method_responses(route: RouteEntry):
    return [
        apigw.MethodResponse(
            status_code=shape.status_code,
            response_parameters={f"method.response.header.{h}": True for h in shape.headers}
            or None,
        )
        for shape in route.responses
    ]


class StreamShareApi(Construct):
    """
    "Sub-stack" construct for the share URL -> API Gateway -> Lambda -> GameLift Streams relay.
    Materializes an InfrastructureDescriptor; it makes no decisions of its own.
    """

    def __init__(self, scope: Construct, construct_id: str, *, descriptor: InfrastructureDescriptor) -> None:
        super().__init__(scope, construct_id)

        unit = descriptor.compute_unit
        server_fn = self._server_function(unit)

        for grant in descriptor.grants:
            server_fn.add_to_role_policy(
                iam.PolicyStatement(
                    effect=iam.Effect.ALLOW if grant.effect == "Allow" else iam.Effect.DENY,
                    actions=list(grant.actions),
                    resources=list(grant.resources),
                )
            )

        cors = descriptor.cors
        stage = descriptor.stage
        api = apigw.RestApi(
            self,
            "GameLiftStreamsShareUrlApi",
            rest_api_name=descriptor.api_name,
            description=descriptor.api_description,
            default_cors_preflight_options=apigw.CorsOptions(
                allow_origins=list(cors.allow_origins),
                allow_methods=list(cors.allow_methods),
                allow_headers=list(cors.allow_headers),
                max_age=Duration.seconds(cors.max_age_seconds),
            ),
            deploy_options=apigw.StageOptions(
                stage_name=stage.stage_name,
                logging_level=_LOGGING_LEVELS[stage.logging_level],
                data_trace_enabled=stage.data_trace_enabled,
                tracing_enabled=stage.tracing_enabled,
            ),
        )

        integration = apigw.LambdaIntegration(
            server_fn,
            proxy=True,
            timeout=Duration.seconds(unit.integration_timeout_seconds),
        )

        # Named routes first so resources exist before the greedy proxy is attached.
        for route in sorted(descriptor.routes, key=lambda r: r.catch_all):
            if route.catch_all:
                api.root.add_proxy(default_integration=integration, any_method=True)
                continue
            resource = api.root
            for segment in route.path:
                resource = resource.get_resource(segment) or resource.add_resource(segment)
            resource.add_method(
                route.method,
                integration,
                method_responses=_method_responses(route),
            )

        self.api = api
        self.lambda_fn = server_fn

    def _server_function(self, unit: ComputeUnitSpec) -> lambda_.Function:
        asset = Path(unit.asset_path)
        if not asset.exists():
            raise ValueError(
                f"server asset not found: {asset} "
                "(set STREAM_SHARE_SERVER_PATH or the server_asset_path context key)"
            )
        if unit.log_retention_days not in _RETENTION:
            raise ValueError(f"unsupported log retention: {unit.log_retention_days} days")

        log_group = logs.LogGroup(
            self,
            "ServerLogs",
            retention=_RETENTION[unit.log_retention_days],
            removal_policy=RemovalPolicy.DESTROY,
        )

        return lambda_.Function(
            self,
            unit.construct_id,
            runtime=lambda_.Runtime.NODEJS_18_X,
            code=lambda_.Code.from_asset(str(asset)),
            handler=unit.handler,
            memory_size=unit.memory_mb,
            timeout=Duration.seconds(unit.timeout_seconds),
            environment=dict(unit.environment),
            architecture=_ARCHITECTURES[unit.architecture],
            tracing=lambda_.Tracing.ACTIVE if unit.tracing_enabled else lambda_.Tracing.DISABLED,
            log_group=log_group,
        )


class StreamShareApiStack(Stack):
    """
    Small wrapper stack so this construct can be deployed standalone.
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        descriptor: InfrastructureDescriptor,
        env: Optional[cdk.Environment] = None,
        **kwargs,
    ) -> None:
        super().__init__(scope, construct_id, env=env, **kwargs)

        share = StreamShareApi(self, "StreamShare", descriptor=descriptor)

        CfnOutput(
            self,
            "Instructions",
            value=format_instructions(share.api.url, descriptor.stream_group_id, descriptor.application_id),
            description="Instructions for using the GameLiftStreams Share URL",
        )
        CfnOutput(self, "ApiBaseUrl", value=share.api.url)

        self.share = share


def stack_environment(account: Optional[str], region: Optional[str]) -> Optional[cdk.Environment]:
    if account is None and region is None:
        return None
    return cdk.Environment(account=account, region=region)
