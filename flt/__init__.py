import logging

from .context import *
from .context import __all__ as context_all
from .formatter import Formatter, InfiniteLoopError
from .num import *
from .num import __all__ as num_all
from .reader import Reader
from .text import TextFormat

__all__ = context_all + num_all + ('Formatter', 'InfiniteLoopError', 'Reader', 'TextFormat')

__version__ = '0.1.0'

logging.getLogger(__name__).addHandler(logging.NullHandler())
