from .sw_pairwise import *
from .persistence import *
from .kernel_segmenter import *
