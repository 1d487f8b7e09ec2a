"""Profile block configuration variants.

The ``config`` column of a block is JSON whose shape depends on the block
``type``. It is parsed into one of the variants below before use, so code
outside this module never indexes into raw dictionaries.
"""

from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from biolink.models.profile import ProfileBlock


class LinkBlockConfig(BaseModel):
    """A clickable link button."""

    type: Literal["link"] = "link"
    url: str
    title: str
    icon: str | None = None
    style: Literal["default", "outline", "shadow"] | None = None


class TextBlockConfig(BaseModel):
    """A paragraph of text."""

    type: Literal["text"] = "text"
    content: str
    alignment: Literal["left", "center", "right"] | None = None
    font_size: Literal["small", "medium", "large"] | None = Field(default=None, alias="fontSize")


class HeaderBlockConfig(BaseModel):
    """A section heading."""

    type: Literal["header"] = "header"
    text: str
    level: Literal[1, 2, 3] | None = None
    alignment: Literal["left", "center", "right"] | None = None


BlockConfig = Annotated[
    LinkBlockConfig | TextBlockConfig | HeaderBlockConfig,
    Field(discriminator="type"),
]

_block_config_adapter: TypeAdapter[BlockConfig] = TypeAdapter(BlockConfig)


def parse_block_config(block_type: str, config: dict[str, Any]) -> BlockConfig | None:
    """Parse a stored block config, or None if it does not match its type."""
    try:
        return _block_config_adapter.validate_python({**config, "type": block_type})
    except ValidationError:
        return None


def block_label(block: ProfileBlock) -> tuple[str, str]:
    """Return the ``(title, url)`` shown for a block in analytics."""
    match parse_block_config(block.type, block.config):
        case LinkBlockConfig(title=title, url=url):
            return title or "Untitled", url
        case HeaderBlockConfig(text=text):
            return text or "Untitled", ""
        case TextBlockConfig():
            return "Untitled", ""
        case None:
            return "Untitled", ""
