from __future__ import annotations

"""CLI for StudySAT: progress, saved quizzes and cross-device sync."""

import argparse
import logging
import sys
import time
from typing import Any, Dict, List, Optional

from .. import __version__
from ..config.config import ConfigError, load_config, validate_config
from ..questions.bank import QuestionBankError
from ..questions.filters import AnswerStatus, BluebookFilter, FilterOptions, SeenStatus
from ..stats.stats import format_summary, progress_frame
from ..storage.schema import QuizState
from . import explain
from .study_app import StudyApp

logger = logging.getLogger(__name__)

# CLI attribute names -> Question fields
ATTRIBUTE_ARGS = {
    "program": "program",
    "module": "module",
    "primary-class": "primary_class_desc",
    "skill": "skill_desc",
    "difficulty": "difficulty",
}


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="studysat", description="StudySAT progress and sync")
    p.add_argument("--config", default=None, help="Path to YAML config")
    p.add_argument("--explain", action="store_true", help="Trace sync milestones")
    p.add_argument("--version", action="version", version=f"studysat {__version__}")
    sub = p.add_subparsers(dest="cmd", required=True)

    ms = sub.add_parser("mark-seen")
    ms.add_argument("question_id")

    ma = sub.add_parser("mark-answered")
    ma.add_argument("question_id")
    grp = ma.add_mutually_exclusive_group(required=True)
    grp.add_argument("--correct", dest="correct", action="store_true")
    grp.add_argument("--incorrect", dest="correct", action="store_false")

    st = sub.add_parser("stats")
    st.add_argument("--by", choices=sorted(ATTRIBUTE_ARGS), default=None)

    rs = sub.add_parser("reset")
    rg = rs.add_mutually_exclusive_group(required=True)
    rg.add_argument("--all", action="store_true")
    rg.add_argument("--by", choices=sorted(ATTRIBUTE_ARGS))
    rs.add_argument("--value", default=None)

    sub.add_parser("quiz-list")

    qs = sub.add_parser("quiz-save")
    qs.add_argument("--id", default=None, help="Existing quiz id to overwrite")
    qs.add_argument("--questions", default=None, help="Comma-separated question ids; default: filter the bank")
    qs.add_argument("--index", type=int, default=0)
    qs.add_argument("--program", default=None)
    qs.add_argument("--module", default=None)
    qs.add_argument("--primary-class", dest="primary_class", default=None)
    qs.add_argument("--skill", default=None)
    qs.add_argument("--difficulty", default=None)
    qs.add_argument("--seen", choices=[s.name.lower() for s in SeenStatus], default="all")
    qs.add_argument("--answered", choices=[s.name.lower() for s in AnswerStatus], default="all")
    qs.add_argument("--bluebook", choices=[s.name.lower() for s in BluebookFilter], default="all")

    qd = sub.add_parser("quiz-delete")
    qdg = qd.add_mutually_exclusive_group(required=True)
    qdg.add_argument("quiz_id", nargs="?")
    qdg.add_argument("--all", action="store_true")

    sub.add_parser("sync")
    sub.add_parser("sync-status")
    sub.add_parser("enable-sync")
    sub.add_parser("disable-sync")

    w = sub.add_parser("watch", help="Poll the shared directory and sync on changes")
    w.add_argument("--interval", type=float, default=5.0)
    w.add_argument("--count", type=int, default=None, help="Stop after N polls")

    return p


def _filters_from_args(args: argparse.Namespace) -> FilterOptions:
    return FilterOptions(
        program=args.program,
        module=args.module,
        primary_class_desc=args.primary_class,
        skill_desc=args.skill,
        difficulty=args.difficulty,
        seen_status=SeenStatus[args.seen.upper()],
        answer_status=AnswerStatus[args.answered.upper()],
        bluebook=BluebookFilter[args.bluebook.upper()],
    )


def _cmd_quiz_save(app: StudyApp, args: argparse.Namespace) -> int:
    filters = _filters_from_args(args)
    if args.questions:
        question_ids = [q.strip() for q in args.questions.split(",") if q.strip()]
    else:
        question_ids = [q.question_id for q in app.filtered_questions(filters)]
    fields: Dict[str, Any] = {"filters": filters, "question_ids": question_ids, "current_index": args.index}
    if args.id:
        fields["id"] = args.id
    saved = app.quizzes.save(QuizState(**fields))
    if saved is None:
        print("No questions match; quiz not saved.")
        return 1
    print(f"Saved quiz {saved.id} ({len(saved.question_ids)} questions): {saved.filter_description()}")
    return 0


def _cmd_reset(app: StudyApp, args: argparse.Namespace) -> int:
    if args.all:
        n = app.progress.reset_all()
    else:
        if not args.value:
            print("ERROR: --by requires --value", file=sys.stderr)
            return 2
        n = app.progress.reset_by(ATTRIBUTE_ARGS[args.by], args.value, app.bank)
    print(f"Cleared progress for {n} question(s).")
    return 0


def _print_status(app: StudyApp) -> None:
    for c in app.controllers:
        pref = "on" if c.sync_enabled else "off"
        print(f"{c.domain.name}: {c.status.value} (preference {pref})")


def _run(app: StudyApp, args: argparse.Namespace) -> int:
    cmd = args.cmd
    if cmd == "mark-seen":
        app.progress.mark_seen(args.question_id)
        return 0
    if cmd == "mark-answered":
        app.progress.mark_answered(args.question_id, args.correct)
        return 0
    if cmd == "stats":
        df = progress_frame(app.progress.progress, app.bank)
        by = ATTRIBUTE_ARGS[args.by] if args.by else None
        print(format_summary(df, by))
        return 0
    if cmd == "reset":
        return _cmd_reset(app, args)
    if cmd == "quiz-list":
        quizzes = app.quizzes.saved_quizzes()
        if not quizzes:
            print("No saved quizzes.")
        for q in quizzes:
            print(
                f"{q.id}  {q.last_saved.isoformat(timespec='seconds')}  "
                f"{q.current_index}/{len(q.question_ids)}  {q.filter_description()}"
            )
        return 0
    if cmd == "quiz-save":
        return _cmd_quiz_save(app, args)
    if cmd == "quiz-delete":
        if args.all:
            print(f"Deleted {app.quizzes.clear_all()} quiz(zes).")
        else:
            app.quizzes.delete(args.quiz_id)
        return 0
    if cmd == "sync":
        results = app.sync_now()
        for name, ok in results.items():
            print(f"{name}: {'synced' if ok else 'sync unavailable or disabled'}")
        return 0 if all(results.values()) else 1
    if cmd == "sync-status":
        _print_status(app)
        return 0
    if cmd in ("enable-sync", "disable-sync"):
        results = app.set_sync_enabled(cmd == "enable-sync")
        if cmd == "enable-sync" and not all(results.values()):
            print("Sync could not start: remote store not available.")
            return 1
        _print_status(app)
        return 0
    if cmd == "watch":
        polls = 0
        try:
            while args.count is None or polls < args.count:
                changed = app.poll_remote()
                if changed:
                    logger.info("Remote changed: %s", ", ".join(changed))
                polls += 1
                if args.count is None or polls < args.count:
                    time.sleep(args.interval)
        except KeyboardInterrupt:
            pass
        return 0
    raise ValueError(f"Unknown command: {cmd}")


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    explain.enable(args.explain)
    try:
        cfg = validate_config(load_config(args.config))
    except ConfigError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    logging.basicConfig(level=cfg["logging"]["level"], format="%(levelname)s %(name)s: %(message)s")

    app = StudyApp.from_config(cfg)
    try:
        app.start()
        return _run(app, args)
    except QuestionBankError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    finally:
        app.close()


if __name__ == "__main__":
    sys.exit(main())
