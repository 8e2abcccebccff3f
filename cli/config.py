"""Configuration management for the CLI tool."""

from pydantic import BaseModel, Field

from safereport.configs.prompts import ASSISTANT_NAME_DEFAULT


class CLIConfig(BaseModel):
    """CLI configuration settings."""

    host: str = Field(
        default="localhost",
        description="Server host",
    )
    port: int = Field(
        default=8080,
        description="Server port",
    )
    user_id: str | None = Field(
        default=None,
        description="Reporter id sent in the identity header",
    )
    user_id_header: str = Field(
        default="X-User-Id",
        description="Identity header expected by the server",
    )
    max_turns: int = Field(
        default=3,
        ge=1,
        description="Exchanges before the summary is generated",
    )
    timeout: float = Field(
        default=90.0,
        description="Seconds to wait for one server round-trip",
    )
    assistant_name: str = Field(
        default=ASSISTANT_NAME_DEFAULT,
        description="Persona name shown in the conversation",
    )

    @property
    def base_url(self) -> str:
        """Get the base URL for the API."""
        return f"http://{self.host}:{self.port}"

    @property
    def headers(self) -> dict[str, str]:
        if not self.user_id:
            return {}
        return {self.user_id_header: self.user_id}
