from sqlalchemy import Column, Integer, String, Text, Date, DateTime, ForeignKey, Index, UniqueConstraint, text, func
from database.models_base import Base


class Round(Base):
    __tablename__ = 'rounds'

    id = Column(Integer, primary_key=True, autoincrement=True)
    round_date = Column(Date, nullable=False)
    round_number = Column(Integer, nullable=False, default=1, server_default=text('1'))  # Disambiguates rounds on one date

    # Episode metadata
    episode_number = Column(Integer, nullable=False)
    episode_id = Column(Integer, nullable=True)
    episode_url = Column(String(500), nullable=True)
    episode_start_seconds = Column(Integer, default=0, server_default=text('0'))

    clue_giver_id = Column(Integer, ForeignKey('persons.id', ondelete='CASCADE'), nullable=False)
    description = Column(Text, nullable=True)
    description2 = Column(Text, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint('round_date', 'round_number', name='uq_round_date_number'),
        Index('idx_rounds_episode_number', 'episode_number'),
        Index('idx_rounds_clue_giver', 'clue_giver_id'),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "round_date": self.round_date.isoformat() if self.round_date else None,
            "round_number": self.round_number,
            "episode_number": self.episode_number,
            "episode_id": self.episode_id,
            "episode_url": self.episode_url,
            "episode_start_seconds": self.episode_start_seconds,
            "clue_giver_id": self.clue_giver_id,
            "description": self.description,
            "description2": self.description2,
        }

    def __repr__(self):
        return f"<Round(id={self.id}, round_date={self.round_date}, round_number={self.round_number})>"


class RoundSolution(Base):
    __tablename__ = 'round_solutions'

    id = Column(Integer, primary_key=True, autoincrement=True)
    round_id = Column(Integer, ForeignKey('rounds.id', ondelete='CASCADE'), nullable=False)
    word = Column(String(100), nullable=False)  # Upper-cased
    word_order = Column(Integer, default=1, server_default=text('1'))  # 1-based answer rank

    __table_args__ = (
        Index('idx_round_solutions_round', 'round_id'),
        Index('idx_round_solutions_word', 'word'),
    )

    def __repr__(self):
        return f"<RoundSolution(round_id={self.round_id}, word={self.word}, order={self.word_order})>"


class RoundGuesser(Base):
    __tablename__ = 'round_guessers'

    id = Column(Integer, primary_key=True, autoincrement=True)
    round_id = Column(Integer, ForeignKey('rounds.id', ondelete='CASCADE'), nullable=False)
    person_id = Column(Integer, ForeignKey('persons.id', ondelete='CASCADE'), nullable=False)

    __table_args__ = (
        UniqueConstraint('round_id', 'person_id', name='uq_round_guesser'),
        Index('idx_round_guessers_person', 'person_id'),
    )

    def __repr__(self):
        return f"<RoundGuesser(round_id={self.round_id}, person_id={self.person_id})>"
