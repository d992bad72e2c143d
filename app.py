import os, io, csv, math, secrets, argparse, functools, json, hmac, hashlib, logging, string, random
from datetime import datetime, timedelta
from flask import (
    Flask, render_template, request, redirect, url_for,
    session, make_response, jsonify, abort, Response, send_file, current_app
)
from itsdangerous import URLSafeSerializer, BadSignature
from sqlalchemy.exc import IntegrityError

import grading
from grading import DuplicateSubmission
from models import (db, User, TeacherStudent, Test, TestResult,
                    TEACHER, STUDENT, ROLES, ACTIVE, TEST_STATUSES)
import qrcode

log = logging.getLogger("quizgrade")

# --------------------------------------------------------------------
# Config
# --------------------------------------------------------------------
APP_SECRET = os.environ.get("APP_SECRET") or secrets.token_hex(32)
DB_PATH = os.path.abspath(os.environ.get("QUIZGRADE_DB", "quizgrade.db"))
DB_URI  = os.environ.get("DATABASE_URL") or f"sqlite:///{DB_PATH}"
NUMERIC_COMPARISON = os.environ.get("GRADING_NUMERIC_COMPARISON", "exact")
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

def configure_logging(level=LOG_LEVEL):
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    return log

def create_app(db_path=DB_URI):
    configure_logging()
    app = Flask(__name__)
    app.config["SECRET_KEY"] = APP_SECRET
    app.config["SQLALCHEMY_DATABASE_URI"] = db_path
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
    app.config["PERMANENT_SESSION_LIFETIME"] = timedelta(days=7)
    app.config["SESSION_COOKIE_NAME"] = "quizgrade_session"
    app.config["SESSION_COOKIE_SAMESITE"] = "Lax"
    app.config["NUMERIC_COMPARISON"] = grading.NumericComparison.parse(NUMERIC_COMPARISON)
    db.init_app(app)
    with app.app_context():
        db.create_all()
    return app

app = create_app()

def numeric_comparison():
    return current_app.config.get("NUMERIC_COMPARISON") or grading.EXACT

# --------------------------------------------------------------------
# CSRF helpers (form + JSON header)
# --------------------------------------------------------------------
def _csrf_key():
    if "csrf_key" not in session:
        session["csrf_key"] = secrets.token_hex(16)
    return session["csrf_key"]

def csrf_token():
    secret = APP_SECRET.encode()
    key = _csrf_key().encode()
    return hmac.new(secret, key, hashlib.sha256).hexdigest()

def verify_csrf(form_field="csrf"):
    sent = request.form.get(form_field, "")
    return hmac.compare_digest(sent, csrf_token())

def verify_csrf_header(header="X-CSRF"):
    sent = request.headers.get(header, "")
    return hmac.compare_digest(sent, csrf_token())

@app.context_processor
def inject_csrf():
    return {"csrf_token": csrf_token}

# --------------------------------------------------------------------
# Auth/session helpers
# --------------------------------------------------------------------
def current_user():
    uid = session.get("user_id")
    return db.session.get(User, uid) if uid else None

def login_session(user):
    logout_everyone()
    session["user_id"] = user.id
    session["user_role"] = user.role
    session["user_name"] = user.name
    session.permanent = True

def logout_everyone():
    session.pop("user_id", None)
    session.pop("user_role", None)
    session.pop("user_name", None)

def require_user(role=None):
    def deco(fn):
        @functools.wraps(fn)
        def wrapper(*args, **kwargs):
            u = current_user()
            if not u:
                return redirect(url_for("login", next=request.path))
            if role and u.role != role:
                abort(403)
            return fn(*args, **kwargs)
        return wrapper
    return deco

# --------------------------------------------------------------------
# "Remember me" cookie (optional)
# --------------------------------------------------------------------
signer = URLSafeSerializer(APP_SECRET, salt="remember-cookie")
REMEMBER_COOKIE = "qg_remember"

def set_remember_cookie(resp, user):
    token = signer.dumps({"id": user.id, "email": user.email})
    resp.set_cookie(REMEMBER_COOKIE, token, max_age=60*60*24*7, httponly=True, samesite="Lax")
    return resp

def try_restore_user_from_cookie():
    if "user_id" in session:
        return
    token = request.cookies.get(REMEMBER_COOKIE)
    if not token:
        return
    try:
        data = signer.loads(token)
    except BadSignature:
        return
    uid, email = data.get("id"), data.get("email")
    if not uid or not email:
        return
    user = db.session.get(User, uid)
    if not user or user.email != email:
        return
    login_session(user)

@app.before_request
def _restore_user():
    try_restore_user_from_cookie()

def _render(template, **ctx):
    u = current_user()
    return render_template(template, user=u, user_name=u.name if u else None, **ctx)

# --------------------------------------------------------------------
# Utils
# --------------------------------------------------------------------
def gen_code(n=8):
    alphabet = string.ascii_lowercase + string.digits
    return ''.join(random.choice(alphabet) for _ in range(n))

def _number(raw, label):
    if isinstance(raw, bool):
        raise ValueError(f"{label} must be a number.")
    try:
        value = float(raw)
    except (TypeError, ValueError):
        raise ValueError(f"{label} must be a number.")
    if not math.isfinite(value):
        raise ValueError(f"{label} must be a number.")
    return value

def _enrolled(teacher_id, student_id):
    return TeacherStudent.query.filter_by(teacher_id=teacher_id, student_id=student_id).first() is not None

def _student_test_or_404(code, student):
    test = Test.query.filter_by(code=code).first_or_404()
    if not test.is_active:
        abort(404)
    if not _enrolled(test.teacher_id, student.id):
        abort(403)
    return test

def _owned_test_or_404(code, teacher):
    return Test.query.filter_by(code=code, teacher_id=teacher.id).first_or_404()

# --------------------------------------------------------------------
# Test payload validation
# --------------------------------------------------------------------
def _normalize_question(raw, idx):
    if not isinstance(raw, dict):
        raise ValueError("Question payload must be objects.")
    label = f"Question {idx+1}"
    q_type = (raw.get("type") or "").strip().upper()
    text = (raw.get("text") or "").strip()
    if not text:
        raise ValueError(f"{label}: every question needs text.")
    marks_raw = raw.get("marks") if isinstance(raw.get("marks"), dict) else {}
    correct = _number(marks_raw.get("correct", 1), f"{label}: correct marks")
    incorrect = _number(marks_raw.get("incorrect", 0), f"{label}: incorrect marks")

    options_raw = raw.get("options") or []
    if not isinstance(options_raw, list):
        raise ValueError(f"{label}: options must be a list.")
    options = []
    for opt in options_raw:
        if isinstance(opt, str):
            opt = {"text": opt}
        if not isinstance(opt, dict):
            continue
        opt_text = (opt.get("text") or "").strip()
        if opt_text:
            options.append({"text": opt_text, "is_correct": bool(opt.get("is_correct")),
                            "column": (opt.get("column") or "").strip().upper()})

    answer = raw.get("correct_answer")
    answer = str(answer).strip() if answer is not None else ""
    columns = []
    if q_type == grading.MATRIX_MATCH:
        columns = raw.get("row_columns") or [o["column"] for o in options]
        if not isinstance(columns, list):
            raise ValueError(f"{label}: row_columns must be a list.")
        columns = [str(c or "").strip().upper() for c in columns]
        options = [dict(o, is_correct=False) for o in options]

    spec = grading.QuestionSpec(
        id=str(idx), type=q_type, text=text,
        options=tuple(grading.Option(str(i), o["text"], o["is_correct"]) for i, o in enumerate(options)),
        correct_answer=answer if q_type == grading.NUMERICAL and answer else None,
        row_columns=tuple(columns),
        marks=grading.Marks(correct, incorrect),
    )
    try:
        spec.validate()
    except grading.InconsistentQuestionSpec as e:
        raise ValueError(f"{label}: {e}")

    if q_type in (grading.SINGLE_CHOICE, grading.MULTIPLE_CHOICE) and len(options) < 2:
        raise ValueError(f"{label}: choice questions need at least two options.")
    if q_type == grading.MATRIX_MATCH and len(options) != grading.MATRIX_ROWS:
        raise ValueError(f"{label}: matrix match questions need exactly {grading.MATRIX_ROWS} rows.")

    return {
        "type": q_type, "text": text, "marks": {"correct": correct, "incorrect": incorrect},
        "options": [{"text": o["text"], "is_correct": o["is_correct"]} for o in options]
                   if q_type != grading.NUMERICAL else [],
        "correct_answer": spec.correct_answer,
        "row_columns": columns or None,
    }

def normalize_test_payload(data):
    """Validate a test definition; raises ValueError with a user-facing message."""
    if not isinstance(data, dict):
        raise ValueError("Test payload must be an object.")
    title = (data.get("title") or "").strip()
    if len(title) < 3:
        raise ValueError("Title must be at least 3 characters.")
    subject = (data.get("subject") or "").strip()
    if not subject:
        raise ValueError("Subject is required.")
    duration = _number(data.get("duration_minutes") or data.get("duration"), "Duration")
    if duration < 1:
        raise ValueError("Duration must be at least 1 minute.")
    passing = _number(data.get("passing_marks", 0) or 0, "Passing marks")
    if passing < 0:
        raise ValueError("Passing marks cannot be negative.")
    status = (data.get("status") or "DRAFT").strip().upper()
    if status not in TEST_STATUSES:
        raise ValueError(f"Unsupported status '{status}'.")
    questions_raw = data.get("questions")
    if not isinstance(questions_raw, list) or not questions_raw:
        raise ValueError("Add at least one question.")
    return {
        "title": title,
        "description": (data.get("description") or "").strip(),
        "subject": subject,
        "duration_minutes": int(duration),
        "instructions": (data.get("instructions") or "").strip(),
        "passing_marks": passing,
        "status": status,
        "questions": [_normalize_question(q, i) for i, q in enumerate(questions_raw)],
    }

def save_test(payload, teacher, test=None):
    """Create a test, or fully replace an existing one, in one transaction."""
    if test is None:
        code = gen_code()
        while Test.query.filter_by(code=code).first() is not None:
            code = gen_code()
        test = Test(code=code, teacher_id=teacher.id)
        db.session.add(test)
    for key in ("title", "description", "subject", "duration_minutes", "instructions", "passing_marks", "status"):
        setattr(test, key, payload[key])
    test.replace_questions(payload["questions"])
    db.session.commit()
    log.info("Saved test %s (%d questions) for teacher %s", test.code, len(test.questions), teacher.email)
    return test

def _payload_from_form(form):
    try:
        questions = json.loads(form.get("questions_payload") or "[]")
    except json.JSONDecodeError as e:
        raise ValueError(f"Unable to parse the questions payload: {e}")
    return {
        "title": form.get("title"),
        "description": form.get("description"),
        "subject": form.get("subject"),
        "duration_minutes": form.get("duration_minutes"),
        "instructions": form.get("instructions"),
        "passing_marks": form.get("passing_marks"),
        "status": form.get("status"),
        "questions": questions,
    }

def _test_form_data(test):
    questions = []
    for q in test.questions:
        questions.append({
            "type": q.type,
            "text": q.text,
            "options": [{"text": o.text, "is_correct": o.is_correct} for o in q.options],
            "correct_answer": q.correct_answer,
            "row_columns": q.row_columns,
            "marks": {"correct": q.correct_marks, "incorrect": q.incorrect_marks},
        })
    return {
        "title": test.title, "description": test.description or "", "subject": test.subject,
        "duration_minutes": test.duration_minutes, "instructions": test.instructions or "",
        "passing_marks": test.passing_marks, "status": test.status,
        "questions_payload": json.dumps(questions, indent=2),
    }

# --------------------------------------------------------------------
# Submission boundary
# --------------------------------------------------------------------
def existing_result(test, student):
    return TestResult.query.filter_by(test_id=test.id, student_id=student.id).first()

def record_submission(test, student, answers):
    """Grade and persist a student's answers. Raises DuplicateSubmission."""
    if existing_result(test, student) is not None:
        raise DuplicateSubmission("You have already taken this test.")
    answers = answers if isinstance(answers, dict) else {}
    specs = test.question_specs()
    known = {q.id for q in specs}
    answers = {str(k): v for k, v in answers.items() if str(k) in known}
    scored = grading.grade_submission(specs, test.passing_marks, answers, numeric_comparison())
    result = TestResult(test_id=test.id, student_id=student.id, **grading.materialize_result(scored, answers))
    db.session.add(result)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        log.info("Rejected concurrent duplicate submission for test %s by %s", test.code, student.email)
        raise DuplicateSubmission("You have already taken this test.")
    log.info("Recorded result %s for test %s by %s: %s/%s %s",
             result.id, test.code, student.email, result.score, result.total_marks, result.status)
    return result

def _answer_text(item):
    answer = item["student_answer"]
    if answer is None:
        return None
    names = {o["id"]: o["text"] for o in item["options"]}
    if item["type"] == grading.SINGLE_CHOICE:
        return names.get(answer, answer)
    if item["type"] == grading.MULTIPLE_CHOICE:
        return ", ".join(names.get(a, a) for a in answer)
    if item["type"] == grading.MATRIX_MATCH:
        return ", ".join(f"{i+1}→{c or '-'}" for i, c in enumerate(answer))
    return answer

def review_payload(result):
    test = result.test
    items = [item.to_dict() for item in
             grading.explain_result(test.question_specs(), result.answers, numeric_comparison())]
    for item in items:
        item["student_answer_text"] = _answer_text(item)
    return {
        "id": result.id,
        "test_id": test.id,
        "test_title": test.title,
        "subject": test.subject,
        "score": result.score,
        "total_marks": result.total_marks,
        "passing_marks": test.passing_marks,
        "status": result.status,
        "completed_at": result.completed_at.isoformat(),
        "questions": items,
    }

def _answers_from_form(test, form):
    answers = {}
    for q in test.questions:
        key = f"q_{q.id}"
        if q.type == grading.MULTIPLE_CHOICE:
            value = form.getlist(key)
        elif q.type == grading.MATRIX_MATCH:
            value = [form.get(f"{key}_{row}", "") for row in range(grading.MATRIX_ROWS)]
        else:
            value = form.get(key, "")
        if value and value != [""] * grading.MATRIX_ROWS:
            answers[str(q.id)] = value
    return answers

# --------------------------------------------------------------------
# Register / Login / Logout
# --------------------------------------------------------------------
@app.route("/register", methods=["GET", "POST"])
def register():
    error = None
    if request.method == "POST":
        if not verify_csrf(): abort(400, "bad csrf")
        name = (request.form.get("name") or "").strip()
        email = (request.form.get("email") or "").strip().lower()
        pw = request.form.get("password") or ""
        role = (request.form.get("role") or STUDENT).strip().upper()
        if len(name) < 2:
            error = "Name must be at least 2 characters."
        elif "@" not in email:
            error = "Enter a valid email address."
        elif len(pw) < 6:
            error = "Use at least 6 characters."
        elif role not in ROLES:
            error = "Pick teacher or student."
        elif User.query.filter_by(email=email).first() is not None:
            error = "Email already in use"
        else:
            u = User(name=name, email=email, role=role)
            u.set_password(pw)
            db.session.add(u)
            db.session.commit()
            log.info("Registered %s as %s", email, role)
            login_session(u)
            return redirect(url_for("dashboard_for_role"))
    return _render("register.html", error=error)

@app.route("/login", methods=["GET", "POST"])
def login():
    if current_user():
        return redirect(url_for("dashboard_for_role"))

    error = None
    if request.method == "POST":
        if not verify_csrf(): abort(400, "bad csrf")
        email = (request.form.get("email") or "").strip().lower()
        pw    = request.form.get("password") or ""
        acct = User.query.filter_by(email=email).first()
        if not acct or not acct.check_password(pw):
            error = "Invalid email or password"
        else:
            login_session(acct)
            acct.last_login = datetime.now()
            db.session.commit()
            next_url = request.args.get("next") or ""
            if not next_url.startswith("/") or next_url.startswith("//"):
                next_url = url_for("dashboard_for_role")
            resp = make_response(redirect(next_url))
            if request.form.get("remember"):
                set_remember_cookie(resp, acct)
            return resp

    return _render("login.html", error=error)

@app.route("/logout")
def logout():
    resp = make_response(redirect(url_for("login")))
    resp.delete_cookie(REMEMBER_COOKIE)
    logout_everyone()
    return resp

@app.route("/")
def index():
    return redirect(url_for("dashboard_for_role"))

@app.route("/dashboard")
@require_user()
def dashboard_for_role():
    u = current_user()
    return redirect(url_for("teacher_dashboard" if u.is_teacher else "student_dashboard"))

# --------------------------------------------------------------------
# Teacher: tests & roster
# --------------------------------------------------------------------
@app.route("/teacher")
@require_user(TEACHER)
def teacher_dashboard():
    u = current_user()
    tests = Test.query.filter_by(teacher_id=u.id).order_by(Test.created_at.desc()).all()
    roster = TeacherStudent.query.filter_by(teacher_id=u.id).order_by(TeacherStudent.created_at.desc()).all()
    return _render("teacher_dashboard.html", tests=tests, roster=roster,
                   message=session.pop("roster_status", None), error=session.pop("roster_error", None))

@app.route("/teacher/tests/new", methods=["GET", "POST"])
@require_user(TEACHER)
def teacher_test_new():
    error = None
    form_data = {"title": "", "description": "", "subject": "", "duration_minutes": "30",
                 "instructions": "", "passing_marks": "0", "status": "DRAFT", "questions_payload": "[]"}
    if request.method == "POST":
        if not verify_csrf(): abort(400, "bad csrf")
        form_data = {k: request.form.get(k) or "" for k in form_data}
        try:
            payload = normalize_test_payload(_payload_from_form(request.form))
        except ValueError as e:
            error = str(e)
        else:
            test = save_test(payload, current_user())
            return redirect(url_for("teacher_test_show", code=test.code))
    return _render("test_form.html", error=error, form_data=form_data, test=None)

@app.route("/teacher/tests/<code>")
@require_user(TEACHER)
def teacher_test_show(code):
    test = _owned_test_or_404(code, current_user())
    results = TestResult.query.filter_by(test_id=test.id).order_by(TestResult.completed_at.asc()).all()
    share_url = request.url_root.rstrip("/") + url_for("student_test_take", code=test.code)
    return _render("test_show.html", test=test, results=results, share_url=share_url)

@app.route("/teacher/tests/<code>/edit", methods=["GET", "POST"])
@require_user(TEACHER)
def teacher_test_edit(code):
    test = _owned_test_or_404(code, current_user())
    error = None
    form_data = _test_form_data(test)
    if test.results:
        error = "This test already has submissions; its questions can no longer change."
    elif request.method == "POST":
        if not verify_csrf(): abort(400, "bad csrf")
        form_data = {k: request.form.get(k) or "" for k in form_data}
        try:
            payload = normalize_test_payload(_payload_from_form(request.form))
        except ValueError as e:
            error = str(e)
        else:
            save_test(payload, current_user(), test=test)
            return redirect(url_for("teacher_test_show", code=test.code))
    return _render("test_form.html", error=error, form_data=form_data, test=test)

@app.post("/teacher/tests/<code>/status")
@require_user(TEACHER)
def teacher_test_status(code):
    if not verify_csrf(): abort(400, "bad csrf")
    test = _owned_test_or_404(code, current_user())
    status = (request.form.get("status") or "").strip().upper()
    if status not in TEST_STATUSES:
        abort(400, "bad status")
    test.status = status
    db.session.commit()
    return redirect(url_for("teacher_test_show", code=test.code))

@app.route("/teacher/tests/<code>/qr.png")
@require_user(TEACHER)
def teacher_test_qr_png(code):
    test = _owned_test_or_404(code, current_user())
    target = request.url_root.rstrip("/") + url_for("student_test_take", code=test.code)

    qr = qrcode.QRCode(
        version=None,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=8,
        border=2,
    )
    qr.add_data(target)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")

    buf = io.BytesIO()
    img.save(buf, format="PNG")
    buf.seek(0)
    return send_file(buf, mimetype="image/png",
                     as_attachment=False,
                     download_name=f"{test.code}.png")

@app.route("/teacher/tests/<code>/results.csv")
@require_user(TEACHER)
def teacher_test_results_csv(code):
    test = _owned_test_or_404(code, current_user())
    out = io.StringIO()
    writer = csv.writer(out)
    writer.writerow(["student_name", "student_email", "score", "total_marks", "status", "completed_at"])
    for r in TestResult.query.filter_by(test_id=test.id).order_by(TestResult.completed_at.asc()):
        writer.writerow([r.student.name, r.student.email, r.score, r.total_marks, r.status,
                         r.completed_at.isoformat(timespec="seconds")])
    return Response(out.getvalue(), mimetype="text/csv",
                    headers={"Content-Disposition": f"attachment; filename={test.code}-results.csv"})

@app.post("/teacher/students/invite")
@require_user(TEACHER)
def teacher_invite_student():
    if not verify_csrf(): abort(400, "bad csrf")
    u = current_user()
    email = (request.form.get("email") or "").strip().lower()
    student = User.query.filter_by(email=email, role=STUDENT).first()
    if not student:
        session["roster_error"] = "Student not found"
    elif _enrolled(u.id, student.id):
        session["roster_error"] = "Student already enrolled"
    else:
        db.session.add(TeacherStudent(teacher_id=u.id, student_id=student.id))
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            session["roster_error"] = "Student already enrolled"
        else:
            session["roster_status"] = f"Enrolled {student.name}."
    return redirect(url_for("teacher_dashboard"))

@app.post("/teacher/students/<int:student_id>/remove")
@require_user(TEACHER)
def teacher_remove_student(student_id):
    if not verify_csrf(): abort(400, "bad csrf")
    u = current_user()
    link = TeacherStudent.query.filter_by(teacher_id=u.id, student_id=student_id).first_or_404()
    db.session.delete(link)
    db.session.commit()
    session["roster_status"] = "Student removed."
    return redirect(url_for("teacher_dashboard"))

# --------------------------------------------------------------------
# Student: take, submit, review
# --------------------------------------------------------------------
@app.route("/student")
@require_user(STUDENT)
def student_dashboard():
    u = current_user()
    teacher_ids = [link.teacher_id for link in TeacherStudent.query.filter_by(student_id=u.id)]
    available = []
    if teacher_ids:
        available = (Test.query.filter(Test.teacher_id.in_(teacher_ids), Test.status == ACTIVE)
                     .order_by(Test.created_at.desc()).all())
    completed = TestResult.query.filter_by(student_id=u.id).order_by(TestResult.completed_at.desc()).all()
    done_ids = {r.test_id for r in completed}
    available = [t for t in available if t.id not in done_ids]
    return _render("student_dashboard.html", available=available, completed=completed)

@app.route("/student/tests/<code>", methods=["GET", "POST"])
@require_user(STUDENT)
def student_test_take(code):
    u = current_user()
    test = _student_test_or_404(code, u)
    existing = existing_result(test, u)
    if existing:
        return _render("test_submitted.html", test=test, result=existing), 409

    if request.method == "POST":
        if not verify_csrf(): abort(400, "bad csrf")
        try:
            result = record_submission(test, u, _answers_from_form(test, request.form))
        except DuplicateSubmission:
            existing = existing_result(test, u)
            return _render("test_submitted.html", test=test, result=existing), 409
        return redirect(url_for("student_result", result_id=result.id))

    return _render("test_take.html", test=test, columns=grading.MATRIX_COLUMNS, rows=range(grading.MATRIX_ROWS))

@app.route("/api/tests/<code>/submit", methods=["POST"])
def api_submit_test(code):
    u = current_user()
    if not u:
        abort(401)
    if not u.is_student:
        abort(403)
    if not verify_csrf_header():
        abort(400, "bad csrf")
    test = _student_test_or_404(code, u)
    data = request.get_json(silent=True) or {}
    answers = data.get("answers")
    if not isinstance(answers, dict):
        return jsonify({"ok": False, "error": "answers must be an object keyed by question id"}), 400
    try:
        result = record_submission(test, u, answers)
    except DuplicateSubmission as e:
        return jsonify({"ok": False, "error": str(e)}), 409
    return jsonify({"ok": True, "result_id": result.id, "score": result.score,
                    "total_marks": result.total_marks, "status": result.status})

def _own_result_or_404(result_id, user):
    return TestResult.query.filter_by(id=result_id, student_id=user.id).first_or_404()

@app.route("/student/results/<int:result_id>")
@require_user(STUDENT)
def student_result(result_id):
    result = _own_result_or_404(result_id, current_user())
    return _render("result_review.html", review=review_payload(result))

@app.route("/api/results/<int:result_id>")
def api_result(result_id):
    u = current_user()
    if not u:
        abort(401)
    if u.is_student:
        result = _own_result_or_404(result_id, u)
    else:
        result = TestResult.query.join(Test).filter(TestResult.id == result_id, Test.teacher_id == u.id).first_or_404()
    return jsonify(review_payload(result))

# --------------------------------------------------------------------
# Dev entry
# --------------------------------------------------------------------
def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=5000)
    args = parser.parse_args()
    app.run(host=args.host, port=args.port)

if __name__ == "__main__":
    main()
