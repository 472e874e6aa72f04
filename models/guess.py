from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Index, UniqueConstraint, text, func
from database.models_base import Base


class Guess(Base):
    __tablename__ = 'guesses'

    id = Column(Integer, primary_key=True, autoincrement=True)
    clue_id = Column(Integer, ForeignKey('clues.id', ondelete='CASCADE'), nullable=False)
    guesser_person_id = Column(Integer, ForeignKey('persons.id', ondelete='CASCADE'), nullable=False)
    guessed_word = Column(String(100), nullable=False)

    # Derived at write time; never recomputed when the clue's answer is edited
    is_correct = Column(Boolean, nullable=False, default=False, server_default=text('0'))

    created_at = Column(DateTime, server_default=func.now())

    __table_args__ = (
        UniqueConstraint('clue_id', 'guesser_person_id', name='uq_clue_guesser'),
        Index('idx_guesses_guesser', 'guesser_person_id'),
        Index('idx_guesses_is_correct', 'is_correct'),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "clue_id": self.clue_id,
            "guesser_person_id": self.guesser_person_id,
            "guessed_word": self.guessed_word,
            "is_correct": bool(self.is_correct),
        }

    def __repr__(self):
        return f"<Guess(clue_id={self.clue_id}, guesser={self.guesser_person_id}, word={self.guessed_word}, correct={self.is_correct})>"
