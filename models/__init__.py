from .person import Person
from .puzzle import Puzzle, PuzzleConstructor
from .round import Round, RoundSolution, RoundGuesser
from .clue import Clue, CLUE_DIRECTIONS
from .guess import Guess

# Export all models
__all__ = [
    'Person',
    'Puzzle',
    'PuzzleConstructor',
    'Round',
    'RoundSolution',
    'RoundGuesser',
    'Clue',
    'CLUE_DIRECTIONS',
    'Guess'
]
