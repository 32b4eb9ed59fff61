from .main_pipeline import *
