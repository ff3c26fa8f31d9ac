"""Semantic-analysis passes run over the parsed script tree."""

from .expression import ExpressionWorker  # noqa: F401
from .images_block import ImagesBlockWorker  # noqa: F401
from .init_block import InitBlockWorker  # noqa: F401
from .options_block import OptionsBlockWorker  # noqa: F401
from .scope import VarWorker  # noqa: F401
from .source_positions import SourcePositionsWorker  # noqa: F401
