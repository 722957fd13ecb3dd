"""
Admin tools for ExamGuard

Command-line access to sessions, proctoring logs and maintenance jobs.
"""
import argparse
import os
import sys
from datetime import timedelta
from typing import Optional

from dotenv import load_dotenv


def _load_env() -> None:
    dotenv_path = os.path.join(os.getcwd(), '.env')
    if os.path.exists(dotenv_path):
        load_dotenv(dotenv_path)


def create_user(email: str, full_name: str, role: str) -> bool:
    """Create a user with the given role"""
    from .core import database
    from .models.user import User

    db = database.SessionLocal()
    try:
        if db.query(User).filter(User.email == email).first():
            print(f"❌ User with email {email} already exists")
            return False

        user = User(email=email, full_name=full_name, role=role)
        db.add(user)
        db.commit()

        print("✅ User created")
        print(f"   Email: {email}")
        print(f"   Name: {full_name}")
        print(f"   Role: {role}")
        print(f"   ID: {user.id}")
        return True
    except Exception as e:
        print(f"❌ Failed to create user: {e}")
        db.rollback()
        return False
    finally:
        db.close()


def issue_token(email: str, minutes: Optional[int] = None) -> Optional[str]:
    """Print a bearer token for an existing user"""
    from .core import database
    from .core.security import create_access_token
    from .services.user_service import UserService

    db = database.SessionLocal()
    try:
        user = UserService(db).get_user_by_email(email)
        if not user:
            print(f"❌ User {email} not found")
            return None
        expires = timedelta(minutes=minutes) if minutes else None
        token = create_access_token({"sub": user.email}, expires_delta=expires)
        print(token)
        return token
    finally:
        db.close()


def show_sessions(exam_id: Optional[str] = None, user_id: Optional[int] = None) -> int:
    """List exam sessions, newest first"""
    from .core import database
    from .models.exam_session import ExamSession
    from .utils.timezone import format_local_time

    db = database.SessionLocal()
    try:
        query = db.query(ExamSession)
        if exam_id:
            query = query.filter(ExamSession.exam_id == exam_id)
        if user_id:
            query = query.filter(ExamSession.user_id == user_id)
        sessions = query.order_by(ExamSession.start_time.desc()).all()

        if not sessions:
            print("📝 No sessions found")
            return 0

        print(f"📝 Sessions found: {len(sessions)}")
        print("=" * 80)
        for session in sessions:
            end_time = format_local_time(session.end_time) if session.end_time else "-"
            print(f"ID: {session.session_id}")
            print(f"   Exam: {session.exam_id} | User: {session.user_id}")
            print(f"   Status: {session.status}")
            print(f"   Start: {format_local_time(session.start_time)}")
            print(f"   End: {end_time}")
            print(f"   Tab switches: {session.tab_switch_count} | Answers: {len(session.answers or {})}")
            print("-" * 80)
        return len(sessions)
    finally:
        db.close()


def show_session_violations(session_id: str) -> int:
    """Violation timeline and risk score of one session"""
    from .core import database
    from .models.proctoring_log import ProctoringLog
    from .utils.timezone import format_local_time

    db = database.SessionLocal()
    try:
        log = db.query(ProctoringLog).filter(ProctoringLog.session_id == session_id).first()
        if not log:
            print(f"📊 No proctoring log for session {session_id}")
            return 0

        flag = "🚩 flagged" if log.flagged_for_review else "ok"
        print(f"📊 Session {session_id} | {log.user_name} ({log.user_email})")
        print(f"   Risk score: {log.risk_score} ({flag})")
        print("=" * 80)
        for kind, count in sorted(log.violation_summary.items()):
            if count:
                print(f"   {kind}: {count}")
        print("-" * 80)
        for violation in log.violations:
            print(
                f"[{format_local_time(violation.timestamp)}] {violation.violation_type} "
                f"({violation.severity}) {violation.description or ''}"
            )
        return log.total_violations
    finally:
        db.close()


def violations_report(flagged_only: bool = False) -> int:
    """Risk overview across all proctoring logs"""
    from .core import database
    from .models.proctoring_log import ProctoringLog
    from .proctoring.catalog import empty_summary

    db = database.SessionLocal()
    try:
        query = db.query(ProctoringLog)
        if flagged_only:
            query = query.filter(ProctoringLog.flagged_for_review.is_(True))
        logs = query.order_by(ProctoringLog.risk_score.desc()).all()

        if not logs:
            print("📊 No proctoring logs found")
            return 0

        totals = empty_summary()
        for log in logs:
            for kind, count in (log.violation_summary or {}).items():
                totals[kind] = totals.get(kind, 0) + count

        flagged = sum(1 for log in logs if log.flagged_for_review)
        print(f"📊 Proctoring logs: {len(logs)} | flagged: {flagged}")
        print("=" * 80)
        print("Violations by type:")
        for kind, count in sorted(totals.items(), key=lambda item: item[1], reverse=True):
            print(f"   {kind}: {count}")
        print("-" * 80)
        print("Highest risk:")
        for log in logs[:10]:
            print(f"   {log.risk_score:>3} | {log.exam_id} | {log.user_email} | session {log.session_id}")
        return len(logs)
    finally:
        db.close()


def run_sweep() -> None:
    """Run the expired-exam sweep once"""
    from .tasks.maintenance import run_exam_sweep

    summary = run_exam_sweep()
    if summary is None:
        print("❌ Sweep failed, see log output")
    else:
        print(f"✅ Deactivated {summary['deactivated']} expired exam(s)")


def show_stats() -> dict:
    """Row counts per table"""
    from .core import database
    from .models import Exam, ExamSession, ProctoringLog, ProctoringViolation, User

    db = database.SessionLocal()
    try:
        stats = {
            "users": db.query(User).count(),
            "exams": db.query(Exam).count(),
            "active_exams": db.query(Exam).filter(Exam.is_active.is_(True)).count(),
            "sessions": db.query(ExamSession).count(),
            "proctoring_logs": db.query(ProctoringLog).count(),
            "violations": db.query(ProctoringViolation).count(),
            "flagged_logs": db.query(ProctoringLog).filter(ProctoringLog.flagged_for_review.is_(True)).count(),
        }
        print("📈 Database statistics")
        print("=" * 40)
        for name, value in stats.items():
            print(f"   {name}: {value}")
        return stats
    finally:
        db.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Admin tools for ExamGuard")
    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    create_user_parser = subparsers.add_parser('create-user', help='Create a user')
    create_user_parser.add_argument('--email', required=True, help='User email')
    create_user_parser.add_argument('--name', required=True, help='Full name')
    create_user_parser.add_argument('--role', choices=['student', 'teacher', 'admin'], default='student')

    token_parser = subparsers.add_parser('issue-token', help='Print an access token for a user')
    token_parser.add_argument('--email', required=True, help='User email')
    token_parser.add_argument('--minutes', type=int, help='Token lifetime in minutes')

    sessions_parser = subparsers.add_parser('sessions', help='List exam sessions')
    sessions_parser.add_argument('--exam-id', help='Exam ID')
    sessions_parser.add_argument('--user-id', type=int, help='User ID')

    violations_parser = subparsers.add_parser('session-violations', help='Violations of one session')
    violations_parser.add_argument('--session-id', required=True, help='Session ID')

    report_parser = subparsers.add_parser('violations-report', help='Risk report across all logs')
    report_parser.add_argument('--flagged', action='store_true', help='Only logs flagged for review')

    subparsers.add_parser('sweep', help='Deactivate exams past their end date')
    subparsers.add_parser('stats', help='Show database statistics')
    return parser


def main(argv=None) -> int:
    _load_env()
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    if args.command == 'create-user':
        return 0 if create_user(args.email, args.name, args.role) else 1
    elif args.command == 'issue-token':
        return 0 if issue_token(args.email, args.minutes) else 1
    elif args.command == 'sessions':
        show_sessions(args.exam_id, args.user_id)
    elif args.command == 'session-violations':
        show_session_violations(args.session_id)
    elif args.command == 'violations-report':
        violations_report(args.flagged)
    elif args.command == 'sweep':
        run_sweep()
    elif args.command == 'stats':
        show_stats()
    return 0


if __name__ == '__main__':
    sys.exit(main())
