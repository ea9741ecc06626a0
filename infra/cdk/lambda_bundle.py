from __future__ import annotations

# Third-party packages the webhook Lambda imports that the Python runtime
# does not provide. boto3 ships with the runtime; PyYAML is only needed when
# a config file is deployed.
LAMBDA_REQUIREMENTS: tuple[str, ...] = (
    "google-auth>=2.28",
    "google-api-python-client>=2.120",
    "httplib2>=0.22",
)

SOURCE_PACKAGES: tuple[str, ...] = ("app", "core", "sessions", "sheets", "telegrambot")


def bundling_command(output_dir: str = "/asset-output") -> list[str]:
    requirements = " ".join(f"'{name}'" for name in LAMBDA_REQUIREMENTS)
    packages = " ".join(SOURCE_PACKAGES)
    script = (
        f"pip install --no-cache-dir {requirements} -t {output_dir}"
        f" && cp -r {packages} {output_dir}"
    )
    return ["bash", "-c", script]
