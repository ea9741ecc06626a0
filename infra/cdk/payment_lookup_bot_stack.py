from __future__ import annotations

from pathlib import Path

from aws_cdk import (
    BundlingOptions,
    CfnOutput,
    Duration,
    RemovalPolicy,
    Stack,
    aws_apigatewayv2 as apigwv2,
    aws_apigatewayv2_integrations as apigwv2_integrations,
    aws_dynamodb as dynamodb,
    aws_lambda as lambda_,
    aws_secretsmanager as secretsmanager,
)
from constructs import Construct

from lambda_bundle import bundling_command


class PaymentLookupBotStack(Stack):
    def __init__(self, scope: Construct, construct_id: str, **kwargs: object) -> None:
        super().__init__(scope, construct_id, **kwargs)

        prefix = str(self.node.try_get_context("prefix") or "payment-lookup-bot")
        webhook_path = str(self.node.try_get_context("telegram_webhook_path") or "/webhook/telegram")
        app_secrets_name = str(self.node.try_get_context("app_secrets_name") or "")
        sheet_name = str(self.node.try_get_context("sheet_name") or "")
        app_secret = (
            secretsmanager.Secret.from_secret_name_v2(
                self,
                "AppSecrets",
                app_secrets_name,
            )
            if app_secrets_name
            else None
        )

        sessions_table = dynamodb.Table(
            self,
            "SessionsTable",
            table_name=f"{prefix}-sessions",
            partition_key=dynamodb.Attribute(name="user_id", type=dynamodb.AttributeType.STRING),
            billing_mode=dynamodb.BillingMode.PAY_PER_REQUEST,
            removal_policy=RemovalPolicy.DESTROY,
            time_to_live_attribute="expires_at_epoch",
        )

        update_dedupe_table = dynamodb.Table(
            self,
            "UpdateDedupeTable",
            table_name=f"{prefix}-update-dedupe",
            partition_key=dynamodb.Attribute(name="update_id", type=dynamodb.AttributeType.STRING),
            billing_mode=dynamodb.BillingMode.PAY_PER_REQUEST,
            removal_policy=RemovalPolicy.DESTROY,
            time_to_live_attribute="expires_at_epoch",
        )

        lambda_asset_path = str(Path(__file__).resolve().parents[2])
        lambda_asset_excludes = [
            ".git/**",
            ".venv/**",
            ".venv*/**",
            "venv/**",
            "__pycache__/**",
            "**/__pycache__/**",
            "*.pyc",
            "data/**",
            "tests/**",
            "infra/**",
            "cdk.out/**",
            "credentials.json",
            "*.md",
        ]
        environment = {
            "APP_ENV": "production",
            "SESSION_BACKEND": "dynamodb",
            "SESSIONS_TABLE": sessions_table.table_name,
            "UPDATE_DEDUPE_TABLE": update_dedupe_table.table_name,
            "TELEGRAM_WEBHOOK_PATH": webhook_path,
            "APP_SECRETS_ARN": app_secret.secret_arn if app_secret else "",
            "APP_SECRETS_NAME": app_secrets_name,
        }
        if sheet_name:
            environment["SHEET_NAME"] = sheet_name

        webhook_fn = lambda_.Function(
            self,
            "TelegramWebhookFunction",
            function_name=f"{prefix}-webhook",
            runtime=lambda_.Runtime.PYTHON_3_12,
            handler="app.lambda_handlers.webhook_handler.lambda_handler",
            code=lambda_.Code.from_asset(
                lambda_asset_path,
                exclude=lambda_asset_excludes,
                bundling=BundlingOptions(
                    image=lambda_.Runtime.PYTHON_3_12.bundling_image,
                    command=bundling_command(),
                ),
            ),
            timeout=Duration.seconds(20),
            memory_size=256,
            environment=environment,
        )

        sessions_table.grant_read_write_data(webhook_fn)
        update_dedupe_table.grant_read_write_data(webhook_fn)
        if app_secret is not None:
            app_secret.grant_read(webhook_fn)

        webhook_api = apigwv2.HttpApi(
            self,
            "TelegramWebhookApi",
            api_name=f"{prefix}-webhook",
        )
        webhook_api.add_routes(
            path=webhook_path,
            methods=[apigwv2.HttpMethod.POST],
            integration=apigwv2_integrations.HttpLambdaIntegration(
                "TelegramWebhookIntegration",
                webhook_fn,
            ),
        )

        CfnOutput(self, "TelegramWebhookUrl", value=f"{webhook_api.api_endpoint}{webhook_path}")
        CfnOutput(self, "SessionsTableName", value=sessions_table.table_name)
