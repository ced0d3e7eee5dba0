"""Pydantic model for database connection parameters."""

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, SecretStr


class ConnectionConfig(BaseModel):
    """Where and as whom to connect.

    ``schema_name`` is a namespace pinned on the session search path after
    connecting; it is also accepted as ``database`` or ``schema``. ``dbname`` is
    the physical PostgreSQL database and defaults to the driver's choice.
    """

    host: str = Field(..., description="Database host")
    port: int | None = Field(None, description="Database port (driver default when omitted)")
    username: str = Field(..., description="Login user")
    password: SecretStr = Field(..., description="Login password")
    schema_name: str | None = Field(
        None,
        description="Schema made active after connecting",
        validation_alias=AliasChoices("schema_name", "database", "schema"),
    )
    dbname: str | None = Field(None, description="Physical database name")

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    @property
    def address(self) -> str:
        """Host with the optional port suffix, as logged on connect."""
        return self.host + (f":{self.port}" if self.port else "")
