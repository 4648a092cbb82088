from tierfsa.fsa import FSA
from tierfsa.algorithms import intersection, accepts_with_loops, language
from tierfsa.label import WILD, is_wild
from tierfsa._private.exceptions import CyclicAutomatonError

__license__    = "Apache"
__version__    = "0.1"
__status__     = "Prototype"
