import json
from datetime import datetime
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy.types import TypeDecorator, TEXT
from sqlalchemy import UniqueConstraint
from werkzeug.security import generate_password_hash, check_password_hash

import grading


db = SQLAlchemy()

TEACHER = "TEACHER"
STUDENT = "STUDENT"
ROLES = (TEACHER, STUDENT)

DRAFT = "DRAFT"
ACTIVE = "ACTIVE"
TEST_STATUSES = (DRAFT, ACTIVE)

class JSONText(TypeDecorator):
    impl = TEXT
    cache_ok = True
    def process_bind_param(self, value, dialect):
        if value is None: return None
        return json.dumps(value, ensure_ascii=False)
    def process_result_value(self, value, dialect):
        if value is None: return None
        return json.loads(value)

class User(db.Model):
    __tablename__ = 'users'
    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, index=True, nullable=False)
    name = db.Column(db.String(120), nullable=False)
    role = db.Column(db.String(16), nullable=False, default=STUDENT)  # TEACHER | STUDENT
    password_hash = db.Column(db.String(255), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.now, nullable=False)
    last_login = db.Column(db.DateTime, nullable=True)

    def set_password(self, pw): self.password_hash = generate_password_hash(pw)
    def check_password(self, pw): return check_password_hash(self.password_hash, pw)

    @property
    def is_teacher(self): return self.role == TEACHER

    @property
    def is_student(self): return self.role == STUDENT

class TeacherStudent(db.Model):
    __tablename__ = 'teacher_students'
    id = db.Column(db.Integer, primary_key=True)
    teacher_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete="CASCADE"), index=True, nullable=False)
    student_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete="CASCADE"), index=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.now, nullable=False)

    teacher = db.relationship('User', foreign_keys=[teacher_id])
    student = db.relationship('User', foreign_keys=[student_id])

    __table_args__ = (
        UniqueConstraint('teacher_id', 'student_id', name='uq_teacher_student'),
    )

class Test(db.Model):
    __tablename__ = 'tests'
    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(12), unique=True, index=True, nullable=False)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    subject = db.Column(db.String(120), nullable=False)
    duration_minutes = db.Column(db.Integer, nullable=False, default=30)
    instructions = db.Column(db.Text, nullable=True)
    passing_marks = db.Column(db.Float, nullable=False, default=0)
    status = db.Column(db.String(16), nullable=False, default=DRAFT)  # DRAFT | ACTIVE
    teacher_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete="CASCADE"), index=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.now, nullable=False)

    teacher = db.relationship('User')
    questions = db.relationship('Question', cascade="all,delete-orphan", order_by='Question.position')

    @property
    def is_active(self):
        return self.status == ACTIVE

    @property
    def total_marks(self):
        return sum(q.correct_marks for q in self.questions)

    def question_specs(self):
        return [q.to_spec() for q in self.questions]

    def replace_questions(self, questions):
        """Drop every question/option and rebuild from a normalized payload.

        Runs inside the caller's transaction; nothing is committed here.
        """
        self.questions.clear()
        db.session.flush()
        for pos, q in enumerate(questions):
            question = Question(
                position=pos,
                type=q["type"],
                text=q["text"],
                correct_marks=q["marks"]["correct"],
                incorrect_marks=q["marks"]["incorrect"],
                correct_answer=q.get("correct_answer"),
                row_columns=q.get("row_columns") or None,
            )
            for opt_pos, opt in enumerate(q.get("options") or []):
                question.options.append(Option(
                    position=opt_pos,
                    text=opt["text"],
                    is_correct=bool(opt.get("is_correct")),
                ))
            self.questions.append(question)

class Question(db.Model):
    __tablename__ = 'questions'
    id = db.Column(db.Integer, primary_key=True)
    test_id = db.Column(db.Integer, db.ForeignKey('tests.id', ondelete="CASCADE"), index=True, nullable=False)
    position = db.Column(db.Integer, nullable=False, default=0)
    type = db.Column(db.String(32), nullable=False)
    text = db.Column(db.Text, nullable=False)
    correct_marks = db.Column(db.Float, nullable=False, default=1)
    incorrect_marks = db.Column(db.Float, nullable=False, default=0)
    correct_answer = db.Column(db.Text, nullable=True)   # NUMERICAL only
    row_columns = db.Column(JSONText, nullable=True)     # MATRIX_MATCH only, e.g. ["B","A","D","C"]

    options = db.relationship('Option', cascade="all,delete-orphan", order_by='Option.position')

    def to_spec(self):
        return grading.QuestionSpec(
            id=str(self.id),
            type=self.type,
            text=self.text,
            options=tuple(
                grading.Option(id=str(o.id), text=o.text, is_correct=bool(o.is_correct))
                for o in self.options
            ),
            correct_answer=self.correct_answer,
            row_columns=tuple(self.row_columns or ()),
            marks=grading.Marks(correct=self.correct_marks, incorrect=self.incorrect_marks),
        )

class Option(db.Model):
    __tablename__ = 'options'
    id = db.Column(db.Integer, primary_key=True)
    question_id = db.Column(db.Integer, db.ForeignKey('questions.id', ondelete="CASCADE"), index=True, nullable=False)
    position = db.Column(db.Integer, nullable=False, default=0)
    text = db.Column(db.Text, nullable=False)
    is_correct = db.Column(db.Boolean, nullable=False, default=False)

class TestResult(db.Model):
    __tablename__ = 'test_results'
    id = db.Column(db.Integer, primary_key=True)
    test_id = db.Column(db.Integer, db.ForeignKey('tests.id', ondelete="CASCADE"), index=True, nullable=False)
    student_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete="CASCADE"), index=True, nullable=False)
    score = db.Column(db.Float, nullable=False)
    total_marks = db.Column(db.Float, nullable=False)
    status = db.Column(db.String(16), nullable=False)  # PASSED | FAILED
    answers = db.Column(JSONText, nullable=False)       # raw submitted answers, keyed by question id
    completed_at = db.Column(db.DateTime, default=datetime.now, nullable=False)

    test = db.relationship('Test', backref=db.backref('results', cascade="all,delete-orphan"))
    student = db.relationship('User')

    # one submission per (test, student) at the DB layer
    __table_args__ = (
        UniqueConstraint('test_id', 'student_id', name='uq_result_test_student'),
    )
