from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Wire models: camelCase on the wire, snake_case in Python (both accepted on input)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
