from sqlalchemy import Column, Integer, Date, DateTime, ForeignKey, Index, UniqueConstraint, text, func
from database.models_base import Base


class Puzzle(Base):
    __tablename__ = 'puzzles'

    id = Column(Integer, primary_key=True, autoincrement=True)
    publication_date = Column(Date, nullable=False, unique=True)
    editor_id = Column(Integer, ForeignKey('persons.id', ondelete='SET NULL'), nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index('idx_puzzles_editor_id', 'editor_id'),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "publication_date": self.publication_date.isoformat() if self.publication_date else None,
            "editor_id": self.editor_id,
        }

    def __repr__(self):
        return f"<Puzzle(id={self.id}, publication_date={self.publication_date})>"


class PuzzleConstructor(Base):
    __tablename__ = 'puzzle_constructors'

    id = Column(Integer, primary_key=True, autoincrement=True)
    puzzle_id = Column(Integer, ForeignKey('puzzles.id', ondelete='CASCADE'), nullable=False)
    person_id = Column(Integer, ForeignKey('persons.id', ondelete='CASCADE'), nullable=False)
    constructor_order = Column(Integer, default=1, server_default=text('1'))

    __table_args__ = (
        UniqueConstraint('puzzle_id', 'person_id', name='uq_puzzle_person'),
        Index('idx_puzzle_constructors_person', 'person_id'),
    )

    def __repr__(self):
        return f"<PuzzleConstructor(puzzle_id={self.puzzle_id}, person_id={self.person_id}, order={self.constructor_order})>"
