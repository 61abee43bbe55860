from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _Request(BaseModel):
    model_config = ConfigDict(extra="forbid", alias_generator=to_camel, populate_by_name=True)


class StartRoundRequest(_Request):
    session_id: str | None = Field(default=None, min_length=1, max_length=128)
    player_id: int | None = Field(default=None, ge=1, strict=True)
    hard_mode: bool = Field(default=False, strict=True)


class RestoreRoundRequest(_Request):
    session_id: str = Field(min_length=1, max_length=128)


class RoundRequest(_Request):
    """Body of every call that acts on an existing round."""

    round_id: str = Field(min_length=1, max_length=128)
    token: str = Field(min_length=1, max_length=2048)


class GuessRequest(RoundRequest):
    guess: str = Field(min_length=1, max_length=200)
