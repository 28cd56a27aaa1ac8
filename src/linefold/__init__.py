"""linefold: fold a stream of log lines into a live, collapsible tree.

Example:
    ```python
    from linefold import Matcher, StreamFolder

    folder = StreamFolder(Matcher.from_patterns([">> (?P<M>.*)"], ["<< (?P<M>.*)"]))
    folder.feed_many([">> build", "compiling", "<< 0"])
    ```
"""

from linefold.exceptions import (
    ConfigurationError,
    LinefoldError,
    RenderError,
    StreamReadError,
)
from linefold.fold import LayoutEngine, Matcher, Renderer, StreamFolder, TreeModel

# Version - should match pyproject.toml
__version__ = "0.3.0"

__all__ = [
    "ConfigurationError",
    "LayoutEngine",
    "LinefoldError",
    "Matcher",
    "RenderError",
    "Renderer",
    "StreamFolder",
    "StreamReadError",
    "TreeModel",
    "__version__",
]
