import hashlib
import hmac
import os
import sys

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("APP_SECRET", "test-secret")

import app as webapp
from models import db, User, TeacherStudent, TEACHER, STUDENT

CSRF_KEY = "test-csrf-key"


@pytest.fixture
def app():
    flask_app = webapp.app
    flask_app.config["TESTING"] = True
    flask_app.config["NUMERIC_COMPARISON"] = webapp.grading.EXACT
    with flask_app.app_context():
        db.create_all()
        yield flask_app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def csrf():
    return hmac.new(webapp.APP_SECRET.encode(), CSRF_KEY.encode(), hashlib.sha256).hexdigest()


def make_user(name, email, role, password="secret123"):
    u = User(name=name, email=email, role=role)
    u.set_password(password)
    db.session.add(u)
    db.session.commit()
    return u


@pytest.fixture
def teacher(app):
    return make_user("Prof Ada", "ada@school.edu", TEACHER)


@pytest.fixture
def student(app, teacher):
    s = make_user("Sam Student", "sam@school.edu", STUDENT)
    db.session.add(TeacherStudent(teacher_id=teacher.id, student_id=s.id))
    db.session.commit()
    return s


def login_as(client, user):
    with client.session_transaction() as sess:
        sess["user_id"] = user.id
        sess["user_role"] = user.role
        sess["user_name"] = user.name
        sess["csrf_key"] = CSRF_KEY


SAMPLE_TEST = {
    "title": "Physics basics",
    "subject": "Physics",
    "duration_minutes": 20,
    "passing_marks": 4,
    "status": "ACTIVE",
    "questions": [
        {
            "type": "SINGLE_CHOICE",
            "text": "Unit of force?",
            "options": [{"text": "Newton", "is_correct": True}, {"text": "Joule"}],
            "marks": {"correct": 4, "incorrect": -1},
        },
        {
            "type": "MULTIPLE_CHOICE",
            "text": "Vector quantities?",
            "options": [
                {"text": "Velocity", "is_correct": True},
                {"text": "Mass"},
                {"text": "Force", "is_correct": True},
            ],
            "marks": {"correct": 4, "incorrect": -2},
        },
        {
            "type": "NUMERICAL",
            "text": "g in m/s^2 (one decimal)?",
            "correct_answer": "9.8",
            "marks": {"correct": 2, "incorrect": 0},
        },
        {
            "type": "MATRIX_MATCH",
            "text": "Match quantity to unit.",
            "options": [{"text": "Force"}, {"text": "Energy"}, {"text": "Power"}, {"text": "Charge"}],
            "row_columns": ["A", "B", "C", "D"],
            "marks": {"correct": 4, "incorrect": -1},
        },
    ],
}


@pytest.fixture
def sample_test(app, teacher):
    return webapp.save_test(webapp.normalize_test_payload(SAMPLE_TEST), teacher)
