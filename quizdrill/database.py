from sqlalchemy import (
    create_engine,
    Boolean,
    Column,
    Integer,
    String,
    Text,
    DateTime,
    ForeignKey,
    JSON,
)
from sqlalchemy.orm import declarative_base, sessionmaker, relationship
from datetime import datetime

Base = declarative_base()


class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True)
    username = Column(String(100), unique=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default="student")  # student, teacher
    total_score = Column(Integer, nullable=False, default=0)
    selected_document_id = Column(Integer, ForeignKey("documents.id"), nullable=True)
    sequential_mode = Column(Boolean, nullable=False, default=True)
    current_paragraph_index = Column(Integer, nullable=False, default=0)
    progress_document_id = Column(Integer, ForeignKey("documents.id"), nullable=True)  # document the index refers to
    api_key = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    score_records = relationship("ScoreRecord", back_populates="user")


class Document(Base):
    __tablename__ = "documents"
    id = Column(Integer, primary_key=True)
    filename = Column(String(255), nullable=False)
    file_path = Column(Text, nullable=False)
    uploaded_at = Column(DateTime, default=datetime.utcnow)
    questions = relationship("Question", back_populates="document")


class Question(Base):
    __tablename__ = "questions"
    id = Column(Integer, primary_key=True)
    content = Column(Text, nullable=False)
    question_type = Column(String(20), nullable=False)  # choice, fill
    options = Column(JSON)  # [{"label": "A", "text": "..."}, ...] for choice only
    correct_answer = Column(Text, nullable=False)
    document_id = Column(Integer, ForeignKey("documents.id"), nullable=True)
    source_document = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow)
    document = relationship("Document", back_populates="questions")


class ScoreRecord(Base):
    __tablename__ = "score_records"
    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    question_id = Column(Integer, ForeignKey("questions.id"), nullable=False, index=True)
    is_correct = Column(Boolean, nullable=False)
    score_change = Column(Integer, nullable=False)
    user_answer = Column(Text, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    user = relationship("User", back_populates="score_records")
    question = relationship("Question")


def get_engine(db_path=None, url=None):
    """Returns a SQLAlchemy engine.

    A full ``url`` (e.g. from DATABASE_URL) takes precedence over a SQLite path.
    """
    if url:
        return create_engine(url)
    return create_engine(f"sqlite:///{db_path or 'quizdrill.db'}")


def init_db(engine):
    """Creates all tables in the database."""
    Base.metadata.create_all(engine)


def get_session(engine):
    """Returns a new session."""
    Session = sessionmaker(bind=engine)
    return Session()
