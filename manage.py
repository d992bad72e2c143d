import argparse, json, secrets, string
from app import create_app, normalize_test_payload, save_test
from models import db, User, TeacherStudent, ROLES, STUDENT, TEACHER

def rand_password(n=10):
    alphabet = string.ascii_letters + string.digits
    return "".join(secrets.choice(alphabet) for _ in range(n))

def _load_json(json_path):
    with open(json_path, "r") as fh:
        return json.load(fh)

def seed_users(app, json_path):
    """
    JSON: [{"name":"Prof X","email":"x@school.edu","role":"TEACHER|STUDENT","password":"..."}]
    If password omitted, one is generated and printed.
    """
    with app.app_context():
        items = _load_json(json_path)
        out = []
        for it in items:
            name = it["name"].strip()
            email = it["email"].strip().lower()
            role = (it.get("role") or STUDENT).strip().upper()
            if role not in ROLES:
                raise SystemExit(f"{email}: unknown role {role!r}")
            pw = it.get("password") or rand_password()
            u = User.query.filter_by(email=email).first()
            if not u:
                u = User(name=name, email=email, role=role)
                u.set_password(pw)
                db.session.add(u)
                action = "created"
            else:
                u.name = name
                u.role = role
                u.set_password(pw)
                action = "updated"
            out.append({"email": email, "password": pw, "role": role, "action": action})
        db.session.commit()
        print("Seeded/updated:", len(out))
        for r in out:
            print(f"{r['email']} ({r['role']}): {r['password']} ({r['action']})")

def enroll(app, teacher_email, student_email):
    with app.app_context():
        teacher = User.query.filter_by(email=teacher_email.strip().lower(), role=TEACHER).first()
        student = User.query.filter_by(email=student_email.strip().lower(), role=STUDENT).first()
        if not teacher or not student:
            raise SystemExit("Teacher or student not found")
        if TeacherStudent.query.filter_by(teacher_id=teacher.id, student_id=student.id).first():
            print("Already enrolled")
            return
        db.session.add(TeacherStudent(teacher_id=teacher.id, student_id=student.id))
        db.session.commit()
        print(f"Enrolled {student.email} with {teacher.email}")

def import_test(app, teacher_email, json_path):
    with app.app_context():
        teacher = User.query.filter_by(email=teacher_email.strip().lower(), role=TEACHER).first()
        if not teacher:
            raise SystemExit("Teacher not found")
        try:
            payload = normalize_test_payload(_load_json(json_path))
        except ValueError as e:
            raise SystemExit(f"Invalid test definition: {e}")
        test = save_test(payload, teacher)
        print(f"Imported '{test.title}' as {test.code} ({len(test.questions)} questions, {test.status})")

if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    sub = parser.add_subparsers(dest="cmd", required=True)
    p = sub.add_parser("seed-users")
    p.add_argument("json_path")
    p = sub.add_parser("enroll")
    p.add_argument("teacher_email")
    p.add_argument("student_email")
    p = sub.add_parser("import-test")
    p.add_argument("teacher_email")
    p.add_argument("json_path")
    args = parser.parse_args()

    app = create_app()
    if args.cmd == "seed-users":
        seed_users(app, args.json_path)
    elif args.cmd == "enroll":
        enroll(app, args.teacher_email, args.student_email)
    else:
        import_test(app, args.teacher_email, args.json_path)
