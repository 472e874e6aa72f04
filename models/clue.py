from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Index, func
from database.models_base import Base

# Crossword clue directions: Across / Down
CLUE_DIRECTIONS = ('A', 'D')


class Clue(Base):
    __tablename__ = 'clues'

    id = Column(Integer, primary_key=True, autoincrement=True)
    round_id = Column(Integer, ForeignKey('rounds.id', ondelete='CASCADE'), nullable=False)
    clue_number = Column(Integer, nullable=False)  # 1-based position within the round

    # Optional link to a specific puzzle cell
    puzzle_id = Column(Integer, ForeignKey('puzzles.id', ondelete='SET NULL'), nullable=True)
    puzzle_clue_number = Column(Integer, nullable=True)
    puzzle_clue_direction = Column(String(1), nullable=True)  # 'A', 'D' or NULL

    clue_text = Column(Text, nullable=False)
    correct_answer = Column(String(100), nullable=False)  # Always upper-cased

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index('idx_clues_round', 'round_id'),
        Index('idx_clues_puzzle', 'puzzle_id'),
        Index('idx_clues_clue_number', 'clue_number'),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "round_id": self.round_id,
            "clue_number": self.clue_number,
            "puzzle_id": self.puzzle_id,
            "puzzle_clue_number": self.puzzle_clue_number,
            "puzzle_clue_direction": self.puzzle_clue_direction,
            "clue_text": self.clue_text,
            "correct_answer": self.correct_answer,
        }

    def __repr__(self):
        return f"<Clue(id={self.id}, round_id={self.round_id}, clue_number={self.clue_number}, answer={self.correct_answer})>"
