#!/usr/bin/env python
"""Top-level module for note_eval"""

# Import all submodules
from . import util
from . import notes
from . import adjacency
from . import matching
from . import velocity
from . import result
from . import metrics
from . import evaluation
from . import transcription
from . import transcription_velocity
from . import debug

from .notes import Note, TempoEvent
from .result import Single, Multiple, Match, MatchResult
from .evaluation import (ToleranceConfig, VelocityConfig, MatchingConfig,
                         match_notes, evaluate_notes, evaluate)

__version__ = '0.1'
