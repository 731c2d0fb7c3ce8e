from .arrival import *  # noqa
from .scanning import *  # noqa
from .performance import *  # noqa
from .jobs import *  # noqa
