"""Browser Tool Schemas — client-side tool definitions offered to every vendor.

Invariants:
    - Parameters are plain JSON Schema: each adapter wraps them in its vendor's tool shape
    - url is the only required argument
"""

from notecritic.core.repository_protocols import ToolDefinition

WEB_BROWSER = ToolDefinition(
    name="web_browser",
    description=(
        "A web browser tool that will fetch a web page and return the content"
    ),
    parameters={
        "type": "object",
        "properties": {
            "url": {
                "type": "string",
                "description": "The url to the page to view",
            },
            "fullHtml": {
                "type": "boolean",
                "description": (
                    "Whether to return the full HTML of the page, "
                    "rather than just the text"
                ),
                "default": False,
            },
        },
        "required": ["url"],
    },
)

TOOLS_BROWSER = [WEB_BROWSER]
