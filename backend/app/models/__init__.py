# This file makes the 'models' directory a Python package.

from .gaze_log import GazeLog
