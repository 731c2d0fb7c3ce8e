from .scm import *  # noqa
from .visitor import *  # noqa
