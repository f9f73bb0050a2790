import tempfile
from datetime import datetime, timedelta, timezone as dt_timezone
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import SimpleTestCase, TestCase, override_settings
from django.urls import reverse

from applications import services, transitions
from applications.models import Application, Comment, PendingEffect
from applications.stages import PIPELINE_ORDER, Stage, is_earlier, is_terminal, parse_stage
from applications.transitions import (
    ApplicationState,
    CommentKind,
    CreateTask,
    InvalidRevertTarget,
    InvalidStage,
    InvalidTransition,
    MissingAssignee,
    MissingReason,
    SendNotification,
    TerminalStateViolation,
    TransitionContext,
    TransitionPolicy,
)
from candidates.models import Candidate
from config.models import SystemSetting
from jobs.models import JobOpening
from messaging.keys import TemplateKey
from messaging.models import Message
from tasks.models import TaskAssignment
from talentflow.constants import PIPELINE_COUNTS_CACHE_KEY

NOW = datetime(2026, 3, 2, 10, 30, tzinfo=dt_timezone.utc)


def _state(stage=Stage.SHORTLISTING, **overrides) -> ApplicationState:
    data = {
        "id": 1,
        "stage": stage.value if isinstance(stage, Stage) else stage,
        "candidate_name": "Ana Pop",
        "candidate_email": "ana@example.com",
        "job_title": "Backend Engineer",
    }
    data.update(overrides)
    return ApplicationState(**data)


def _ctx(**overrides) -> TransitionContext:
    data = {"actor_name": "Priya"}
    data.update(overrides)
    return TransitionContext(**data)


def _make_job(**overrides) -> JobOpening:
    data = {"title": "Backend Engineer", "description": "Django"}
    data.update(overrides)
    return JobOpening.objects.create(**data)


def _make_candidate(email="ana@example.com") -> Candidate:
    return Candidate.objects.create(full_name="Ana Pop", email=email)


def _make_application(stage=Stage.SHORTLISTING, **overrides) -> Application:
    return Application.objects.create(
        candidate=overrides.pop("candidate", None) or _make_candidate(),
        job=overrides.pop("job", None) or _make_job(),
        stage=stage,
        **overrides,
    )


def _sent(**kwargs) -> Message:
    return Message(status=Message.Status.SENT)


def _failed(**kwargs) -> Message:
    return Message(status=Message.Status.FAILED, error_detail="Gmail send failed")


# ── Stage ordering ─────────────────────────────────────────────────────────────

class StageOrderingTests(SimpleTestCase):
    def test_parse_stage(self):
        self.assertEqual(parse_stage("assignment-sent"), Stage.ASSIGNMENT_SENT)
        self.assertIsNone(parse_stage("on-hold"))
        self.assertIsNone(parse_stage(None))

    def test_terminal_stages(self):
        self.assertTrue(is_terminal(Stage.HIRED))
        self.assertTrue(is_terminal("rejected"))
        self.assertFalse(is_terminal(Stage.OFFER_ACCEPTED))

    def test_rejected_has_no_position(self):
        self.assertNotIn(Stage.REJECTED, PIPELINE_ORDER)
        self.assertFalse(is_earlier(Stage.REJECTED, Stage.HIRED))
        self.assertFalse(is_earlier(Stage.SHORTLISTING, Stage.REJECTED))

    def test_is_earlier_follows_canonical_order(self):
        self.assertTrue(is_earlier("screening", "interview"))
        self.assertFalse(is_earlier(Stage.INTERVIEW, Stage.SCREENING))
        self.assertFalse(is_earlier(Stage.INTERVIEW, Stage.INTERVIEW))


# ── request_transition ─────────────────────────────────────────────────────────

class RequestTransitionTests(SimpleTestCase):
    def test_forward_to_any_later_stage_succeeds(self):
        policy = TransitionPolicy(assignee_required=frozenset())
        for i, current in enumerate(PIPELINE_ORDER[:-1]):
            for target in PIPELINE_ORDER[i + 1:]:
                result = transitions.request_transition(_state(current), target, _ctx(), policy)
                self.assertEqual(result.state.stage, target.value)
                self.assertTrue(result.changed)

    def test_terminal_stages_are_absorbing(self):
        for current in (Stage.HIRED, Stage.REJECTED):
            for target in Stage:
                if target == current:
                    continue
                with self.assertRaises(TerminalStateViolation):
                    transitions.request_transition(
                        _state(current), target, _ctx(reason="x", assignee="Raj"),
                    )

    def test_unknown_target_raises_invalid_stage(self):
        with self.assertRaises(InvalidStage):
            transitions.request_transition(_state(), "on-hold", _ctx())

    def test_rejection_without_reason_raises(self):
        state = _state(Stage.INTERVIEW)
        for reason in ("", "   "):
            with self.assertRaises(MissingReason) as cm:
                transitions.request_transition(state, Stage.REJECTED, _ctx(reason=reason))
            self.assertEqual(cm.exception.message, "Please provide a rejection reason.")
        self.assertEqual(state.stage, "interview")
        self.assertEqual(state.comments, ())

    def test_backward_move_requires_revert(self):
        with self.assertRaises(InvalidTransition):
            transitions.request_transition(_state(Stage.INTERVIEW), Stage.SCREENING, _ctx(assignee="Raj"))

    def test_same_stage_is_noop(self):
        state = _state(Stage.ASSIGNMENT_SENT)
        result = transitions.request_transition(state, Stage.ASSIGNMENT_SENT, _ctx())
        self.assertFalse(result.changed)
        self.assertIs(result.state, state)
        self.assertEqual(result.effects, ())
        self.assertIsNone(result.comment)

    def test_comment_text_includes_reason(self):
        result = transitions.request_transition(
            _state(Stage.ASSIGNMENT_SENT), Stage.ASSIGNMENT_SUBMITTED, _ctx(reason="Received by mail"), now=NOW,
        )
        entry = result.comment
        self.assertEqual(entry.kind, CommentKind.TRANSITION)
        self.assertEqual(
            entry.text, "Moved from Assignment Sent to Assignment Submitted. Reason: Received by mail"
        )
        self.assertEqual(entry.from_stage, "assignment-sent")
        self.assertEqual(entry.timestamp, NOW)
        self.assertEqual(result.state.stage_entered_at, NOW)

    def test_each_transition_appends_exactly_one_comment(self):
        state = _state()
        path = [
            (Stage.SCREENING, "Raj"),
            (Stage.ASSIGNMENT_SENT, None),
            (Stage.ASSIGNMENT_SUBMITTED, None),
            (Stage.INTERVIEW, "Mira"),
            (Stage.OFFER_SENT, None),
        ]
        for n, (target, assignee) in enumerate(path, start=1):
            previous = state.comments
            state = transitions.request_transition(state, target, _ctx(assignee=assignee)).state
            self.assertEqual(len(state.comments), n)
            self.assertEqual(state.comments[:-1], previous)

    def test_assignee_kept_when_not_supplied(self):
        state = _state(Stage.SCREENING, assigned_to="Raj")
        result = transitions.request_transition(state, Stage.ASSIGNMENT_SENT, _ctx())
        self.assertEqual(result.state.assigned_to, "Raj")

    def test_input_state_is_not_mutated(self):
        state = _state()
        transitions.request_transition(state, Stage.SCREENING, _ctx(assignee="Raj"))
        self.assertEqual(state.stage, "shortlisting")
        self.assertIsNone(state.assigned_to)

    def test_offer_sent_emits_offer_letter_only(self):
        result = transitions.request_transition(_state(Stage.INTERVIEW), Stage.OFFER_SENT, _ctx())
        self.assertEqual(len(result.effects), 1)
        self.assertEqual(result.effects[0].template_key, TemplateKey.OFFER_LETTER)

    def test_stage_without_template_or_assignee_emits_nothing(self):
        result = transitions.request_transition(_state(Stage.OFFER_SENT), Stage.OFFER_ACCEPTED, _ctx())
        self.assertEqual(result.effects, ())

    def test_assignee_table_is_configurable(self):
        policy = TransitionPolicy(assignee_required=frozenset({Stage.OFFER_ACCEPTED}))
        transitions.request_transition(_state(), Stage.INTERVIEW, _ctx(), policy)
        with self.assertRaises(MissingAssignee):
            transitions.request_transition(_state(Stage.OFFER_SENT), Stage.OFFER_ACCEPTED, _ctx(), policy)

    def test_rejection_never_requires_assignee(self):
        policy = TransitionPolicy(assignee_required=frozenset({Stage.REJECTED}))
        result = transitions.reject_application(_state(Stage.INTERVIEW), "Failed", "Priya", policy)
        self.assertEqual(result.state.stage, "rejected")
        self.assertFalse(any(isinstance(e, CreateTask) for e in result.effects))

    def test_context_template_data_reaches_notification(self):
        context = _ctx(assignee="Raj", template_data={"details": "Tue 10:00", "job_title": "Spoofed"})
        result = transitions.request_transition(_state(), Stage.INTERVIEW, context)
        notification = result.effects[0]
        self.assertEqual(notification.template_data["details"], "Tue 10:00")
        self.assertEqual(notification.template_data["job_title"], "Backend Engineer")


# ── End-to-end engine scenarios ────────────────────────────────────────────────

class EngineScenarioTests(SimpleTestCase):
    def test_screening_with_assignee(self):
        result = transitions.request_transition(
            _state(Stage.SHORTLISTING), "screening", _ctx(assignee="Raj"), now=NOW,
        )
        self.assertEqual(result.state.stage, "screening")
        self.assertEqual(result.state.assigned_to, "Raj")
        self.assertEqual(len(result.state.comments), 1)
        self.assertEqual(result.comment.author, "Priya")
        self.assertEqual(result.comment.stage, "screening")

        notifications = [e for e in result.effects if isinstance(e, SendNotification)]
        tasks = [e for e in result.effects if isinstance(e, CreateTask)]
        self.assertEqual(len(notifications), 1)
        self.assertEqual(notifications[0].template_key, TemplateKey.SCREENING_INVITATION)
        self.assertEqual(notifications[0].recipient_email, "ana@example.com")
        self.assertEqual(notifications[0].template_data["job_title"], "Backend Engineer")
        self.assertEqual(len(tasks), 1)
        self.assertEqual(tasks[0].assignee, "Raj")
        self.assertEqual(tasks[0].stage_label, "Screening Call")

    def test_rejection_from_interview(self):
        result = transitions.request_transition(
            _state(Stage.INTERVIEW), "rejected", _ctx(reason="Failed technical round"), now=NOW,
        )
        self.assertEqual(result.state.stage, "rejected")
        self.assertEqual(result.state.rejection_reason, "Failed technical round")
        self.assertEqual(result.state.rejection_date, NOW)
        self.assertEqual(len(result.effects), 1)
        self.assertEqual(result.effects[0].template_key, TemplateKey.REJECTION)
        self.assertEqual(result.comment.kind, CommentKind.REJECTION)
        self.assertEqual(
            result.comment.text, "Application rejected from Interview stage. Reason: Failed technical round"
        )

    def test_hired_cannot_move_to_offer_sent(self):
        state = _state(Stage.HIRED)
        with self.assertRaises(TerminalStateViolation) as cm:
            transitions.request_transition(state, "offer-sent", _ctx(reason="x"))
        self.assertEqual(cm.exception.status_code, 409)
        self.assertEqual(state.stage, "hired")

    def test_admin_reverts_offer_to_interview(self):
        result = transitions.revert_stage(
            _state(Stage.OFFER_SENT), "interview", _ctx(reason="Candidate requested renegotiation"),
        )
        self.assertEqual(result.state.stage, "interview")
        self.assertEqual(result.comment.kind, CommentKind.REVERT)
        self.assertTrue(result.comment.text.startswith("[Revert] Moved back from Offer Sent to Interview"))

    def test_revert_to_hired_is_invalid(self):
        with self.assertRaises(InvalidRevertTarget):
            transitions.revert_stage(_state(Stage.OFFER_SENT), "hired", _ctx(reason="x"))

    def test_interview_without_assignee(self):
        state = _state(Stage.SHORTLISTING)
        with self.assertRaises(MissingAssignee) as cm:
            transitions.request_transition(state, "interview", _ctx())
        self.assertEqual(cm.exception.message, "Please choose who is responsible for the Interview stage.")
        self.assertEqual(state.stage, "shortlisting")


# ── revert_stage ───────────────────────────────────────────────────────────────

class RevertStageTests(SimpleTestCase):
    def test_non_privileged_revert_to_earlier_stage(self):
        result = transitions.revert_stage(_state(Stage.INTERVIEW), Stage.SCREENING, _ctx(reason="Redo call"))
        self.assertEqual(result.state.stage, "screening")

    def test_non_privileged_revert_to_later_stage_fails(self):
        with self.assertRaises(InvalidRevertTarget):
            transitions.revert_stage(_state(Stage.SCREENING), Stage.INTERVIEW, _ctx(reason="x"))

    def test_terminal_targets_always_fail(self):
        for privileged in (False, True):
            for target in (Stage.HIRED, Stage.REJECTED):
                with self.assertRaises(InvalidRevertTarget):
                    transitions.revert_stage(
                        _state(Stage.OFFER_ACCEPTED), target, _ctx(reason="x", privileged=privileged),
                    )

    def test_cannot_revert_out_of_terminal_stage(self):
        for current in (Stage.HIRED, Stage.REJECTED):
            with self.assertRaises(TerminalStateViolation):
                transitions.revert_stage(
                    _state(current), Stage.INTERVIEW, _ctx(reason="x", privileged=True),
                )

    def test_reason_required(self):
        with self.assertRaises(MissingReason) as cm:
            transitions.revert_stage(_state(Stage.INTERVIEW), Stage.SCREENING, _ctx())
        self.assertEqual(cm.exception.message, "Please provide a reason for reverting the stage.")

    def test_revert_to_current_stage_fails(self):
        with self.assertRaises(InvalidRevertTarget):
            transitions.revert_stage(
                _state(Stage.INTERVIEW), Stage.INTERVIEW, _ctx(reason="x", privileged=True),
            )

    def test_privileged_actor_may_move_to_any_non_terminal_stage(self):
        result = transitions.revert_stage(
            _state(Stage.SCREENING), Stage.OFFER_SENT, _ctx(reason="Fast track", privileged=True),
        )
        self.assertEqual(result.state.stage, "offer-sent")
        self.assertTrue(result.comment.text.startswith("[Revert] Moved from Screening Call to Offer Sent"))

    def test_revert_sends_no_notification(self):
        result = transitions.revert_stage(_state(Stage.INTERVIEW), Stage.SCREENING, _ctx(reason="x"))
        self.assertEqual(result.effects, ())

    def test_revert_with_assignee_creates_task(self):
        result = transitions.revert_stage(
            _state(Stage.INTERVIEW), Stage.SCREENING, _ctx(reason="x", assignee="Raj"),
        )
        self.assertEqual(result.state.assigned_to, "Raj")
        self.assertEqual(len(result.effects), 1)
        self.assertIsInstance(result.effects[0], CreateTask)


# ── reject_application / reassign / add_note ───────────────────────────────────

class RejectApplicationTests(SimpleTestCase):
    def test_reject_twice_is_noop(self):
        first = transitions.reject_application(_state(Stage.SCREENING), "Not a fit", "Priya", now=NOW)
        second = transitions.reject_application(first.state, "Other reason", "Priya")
        self.assertFalse(second.changed)
        self.assertIs(second.state, first.state)
        self.assertEqual(second.effects, ())
        self.assertEqual(second.state.rejection_reason, "Not a fit")

    def test_reject_hired_fails(self):
        with self.assertRaises(TerminalStateViolation):
            transitions.reject_application(_state(Stage.HIRED), "x", "Priya")

    def test_reject_requires_reason_even_when_already_rejected(self):
        with self.assertRaises(MissingReason):
            transitions.reject_application(_state(Stage.REJECTED), "", "Priya")


class ReassignAndNoteTests(SimpleTestCase):
    def test_reassign_emits_task_and_comment(self):
        result = transitions.reassign(_state(Stage.INTERVIEW, assigned_to="Raj"), "Mira", _ctx())
        self.assertEqual(result.state.assigned_to, "Mira")
        self.assertEqual(result.state.stage, "interview")
        self.assertEqual(result.comment.kind, CommentKind.REASSIGNMENT)
        self.assertIn("previously Raj", result.comment.text)
        self.assertEqual(result.effects[0].assignee, "Mira")

    def test_reassign_to_same_person_is_noop(self):
        result = transitions.reassign(_state(assigned_to="Raj"), " Raj ", _ctx())
        self.assertFalse(result.changed)

    def test_unassign(self):
        result = transitions.reassign(_state(assigned_to="Raj"), "", _ctx())
        self.assertIsNone(result.state.assigned_to)
        self.assertEqual(result.effects, ())

    def test_empty_note_fails(self):
        with self.assertRaises(MissingReason):
            transitions.add_note(_state(), "  ", _ctx())

    def test_note_keeps_stage(self):
        result = transitions.add_note(_state(Stage.INTERVIEW), "Strong on SQL", _ctx())
        self.assertEqual(result.state.stage, "interview")
        self.assertEqual(result.comment.kind, CommentKind.NOTE)
        self.assertEqual(result.effects, ())


# ── Services ───────────────────────────────────────────────────────────────────

@patch("applications.effects.send_notification", side_effect=_sent)
class StageChangeServiceTests(TestCase):
    def setUp(self):
        self.user = get_user_model().objects.create_user(
            username="priya", password="test-pass-123", first_name="Priya", last_name="Shah",
        )

    def test_transition_persists_stage_comment_and_effects(self, mock_send):
        app = _make_application()

        outcome = services.apply_transition(app, "screening", user=self.user, assignee="Raj")

        app.refresh_from_db()
        self.assertTrue(outcome.changed)
        self.assertEqual(app.stage, Stage.SCREENING)
        self.assertEqual(app.assigned_to, "Raj")
        comment = app.comments.get()
        self.assertEqual(comment.author, "Priya Shah")
        self.assertEqual(comment.kind, Comment.Kind.TRANSITION)

        effects = list(app.pending_effects.all())
        self.assertEqual([e.kind for e in effects], ["send_notification", "create_task"])
        self.assertTrue(all(e.status == PendingEffect.Status.DELIVERED for e in effects))
        self.assertEqual(mock_send.call_args.kwargs["template_key"], TemplateKey.SCREENING_INVITATION)
        task = TaskAssignment.objects.get(application=app)
        self.assertEqual(task.assignee, "Raj")
        self.assertEqual(task.stage, "Screening Call")

    def test_validation_error_leaves_application_untouched(self, mock_send):
        app = _make_application()
        with self.assertRaises(MissingAssignee):
            services.apply_transition(app, "interview", user=self.user)

        app.refresh_from_db()
        self.assertEqual(app.stage, Stage.SHORTLISTING)
        self.assertFalse(app.comments.exists())
        self.assertFalse(app.pending_effects.exists())
        mock_send.assert_not_called()

    def test_failed_notification_does_not_revert_stage(self, mock_send):
        mock_send.side_effect = _failed
        app = _make_application(Stage.INTERVIEW)

        outcome = services.apply_rejection(app, "Failed technical round", user=self.user)

        app.refresh_from_db()
        self.assertEqual(app.stage, Stage.REJECTED)
        self.assertEqual(app.rejection_reason, "Failed technical round")
        self.assertIsNotNone(app.rejection_date)
        self.assertTrue(outcome.notification_failed)
        effect = app.pending_effects.get()
        self.assertEqual(effect.status, PendingEffect.Status.FAILED)
        self.assertEqual(effect.attempts, 1)

    def test_collaborator_exception_is_recorded(self, mock_send):
        mock_send.side_effect = RuntimeError("connection reset")
        app = _make_application(Stage.ASSIGNMENT_SUBMITTED)

        outcome = services.apply_transition(app, "interview", user=self.user, assignee="Mira")

        app.refresh_from_db()
        self.assertEqual(app.stage, Stage.INTERVIEW)
        self.assertTrue(outcome.notification_failed)
        self.assertFalse(outcome.task_failed)
        failed = app.pending_effects.get(kind=PendingEffect.Kind.SEND_NOTIFICATION)
        self.assertIn("connection reset", failed.last_error)

    def test_rejecting_twice_is_noop(self, mock_send):
        app = _make_application(Stage.SCREENING)
        services.apply_rejection(app, "Not a fit", user=self.user)
        outcome = services.apply_rejection(app, "Again", user=self.user)

        app.refresh_from_db()
        self.assertFalse(outcome.changed)
        self.assertEqual(app.rejection_reason, "Not a fit")
        self.assertEqual(app.comments.count(), 1)
        self.assertEqual(mock_send.call_count, 1)

    def test_superuser_revert_is_privileged(self, mock_send):
        admin = get_user_model().objects.create_superuser(username="root", password="x", email="r@example.com")
        app = _make_application(Stage.SCREENING)

        services.apply_revert(app, "offer-sent", user=admin, reason="Fast track")
        app.refresh_from_db()
        self.assertEqual(app.stage, Stage.OFFER_SENT)

        with self.assertRaises(InvalidRevertTarget):
            services.apply_revert(app, "hired", user=admin, reason="x")

    def test_regular_user_revert_forward_fails(self, mock_send):
        app = _make_application(Stage.SCREENING)
        with self.assertRaises(InvalidRevertTarget):
            services.apply_revert(app, "offer-sent", user=self.user, reason="x")

    def test_stage_change_clears_pipeline_cache(self, mock_send):
        cache.set(PIPELINE_COUNTS_CACHE_KEY, {"shortlisting": 99}, 60)
        app = _make_application()
        cache.set(PIPELINE_COUNTS_CACHE_KEY, {"shortlisting": 99}, 60)
        services.apply_transition(app, "screening", user=self.user, assignee="Raj")
        self.assertIsNone(cache.get(PIPELINE_COUNTS_CACHE_KEY))

    def test_system_setting_overrides_assignee_table(self, mock_send):
        SystemSetting.set("assignee_required_stages", ["offer-accepted"])
        app = _make_application()
        services.apply_transition(app, "interview", user=self.user)
        app.refresh_from_db()
        self.assertEqual(app.stage, Stage.INTERVIEW)

        with self.assertRaises(MissingAssignee):
            services.apply_transition(app, "offer-accepted", user=self.user)

    @override_settings(PIPELINE_ASSIGNEE_REQUIRED_STAGES=["assignment-sent", "bogus"])
    def test_settings_assignee_table_ignores_unknown_stages(self, mock_send):
        policy = services.load_policy()
        self.assertEqual(policy.assignee_required, frozenset({Stage.ASSIGNMENT_SENT}))

    def test_stored_terminal_stage_does_not_block_rejection(self, mock_send):
        SystemSetting.set("assignee_required_stages", ["interview", "rejected", "hired", "shortlisting"])
        self.assertEqual(services.load_policy().assignee_required, frozenset({Stage.INTERVIEW}))

        app = _make_application(Stage.INTERVIEW)
        services.apply_rejection(app, "Failed", user=self.user)
        app.refresh_from_db()
        self.assertEqual(app.stage, Stage.REJECTED)

    def test_reassignment_creates_task(self, mock_send):
        app = _make_application(Stage.INTERVIEW, assigned_to="Raj")
        outcome = services.apply_reassignment(app, "Mira", user=self.user)
        self.assertTrue(outcome.changed)
        app.refresh_from_db()
        self.assertEqual(app.assigned_to, "Mira")
        self.assertTrue(TaskAssignment.objects.filter(application=app, assignee="Mira").exists())
        self.assertEqual(app.comments.get().kind, Comment.Kind.REASSIGNMENT)

    def test_add_note(self, mock_send):
        app = _make_application()
        comment = services.add_note(app, "Great portfolio", user=self.user)
        self.assertEqual(comment.kind, Comment.Kind.NOTE)
        self.assertEqual(comment.stage, Stage.SHORTLISTING)
        self.assertEqual(app.comments.count(), 1)

    def test_comments_round_trip_into_state(self, mock_send):
        app = _make_application()
        services.apply_transition(app, "screening", user=self.user, assignee="Raj")
        services.add_note(app, "Called twice", user=self.user)
        state = app.to_state(with_comments=True)
        self.assertEqual([c.kind for c in state.comments], ["transition", "note"])

    def test_toggle_hot_applicant(self, mock_send):
        app = _make_application()
        self.assertTrue(services.toggle_hot_applicant(app))
        self.assertFalse(services.toggle_hot_applicant(app))
        self.assertFalse(app.comments.exists())


@patch("applications.effects.send_notification", side_effect=_sent)
class ApplicationCreationServiceTests(TestCase):
    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.override = override_settings(MEDIA_ROOT=self.temp_dir.name)
        self.override.enable()

    def tearDown(self):
        self.override.disable()
        self.temp_dir.cleanup()

    def test_create_application_starts_in_shortlisting(self, _mock_send):
        app = services.create_application(_make_candidate(), _make_job())
        self.assertEqual(app.stage, Stage.SHORTLISTING)
        self.assertIsNotNone(app.stage_entered_at)

    def test_duplicate_application_raises(self, _mock_send):
        candidate, job = _make_candidate(), _make_job()
        services.create_application(candidate, job)
        with self.assertRaises(services.DuplicateApplication):
            services.create_application(candidate, job)

    def test_public_application_sends_acknowledgement(self, mock_send):
        job = _make_job()
        resume = SimpleUploadedFile("resume.txt", b"Senior Python developer")

        app = services.submit_public_application(
            job, full_name="Ana Pop", email="Ana@Example.com", resume=resume,
        )

        self.assertEqual(app.candidate.email, "ana@example.com")
        self.assertEqual(app.candidate.resume_text, "Senior Python developer")
        effect = app.pending_effects.get()
        self.assertEqual(effect.status, PendingEffect.Status.DELIVERED)
        self.assertEqual(mock_send.call_args.kwargs["template_key"], TemplateKey.APPLICATION_RECEIVED)

    def test_public_application_reuses_candidate(self, _mock_send):
        candidate = _make_candidate()
        app = services.submit_public_application(
            _make_job(), full_name="Ana P.", email="ANA@example.com",
        )
        self.assertEqual(app.candidate, candidate)

    def test_duplicate_public_application_keeps_existing_resume(self, _mock_send):
        job = _make_job()
        first = services.submit_public_application(
            job, full_name="Ana Pop", email="ana@example.com",
            resume=SimpleUploadedFile("resume.txt", b"Original resume"),
        )
        candidate = first.candidate
        candidate.refresh_from_db()
        path_before = candidate.resume_path

        with self.assertRaises(services.DuplicateApplication):
            services.submit_public_application(
                job, full_name="Ana Pop", email="ana@example.com",
                resume=SimpleUploadedFile("resume.txt", b"Replacement resume"),
            )

        candidate.refresh_from_db()
        self.assertEqual(candidate.resume_text, "Original resume")
        self.assertEqual(candidate.resume_path, path_before)

    def test_duplicate_manual_application_keeps_existing_resume(self, _mock_send):
        job = _make_job()
        services.submit_manual_application(
            job, full_name="Ana Pop", email="ana@example.com",
            resume=SimpleUploadedFile("resume.txt", b"Original resume"),
        )
        with self.assertRaises(services.DuplicateApplication):
            services.submit_manual_application(
                job, full_name="Ana Pop", email="ana@example.com",
                resume=SimpleUploadedFile("resume.txt", b"Replacement resume"),
            )
        candidate = Candidate.objects.get(email="ana@example.com")
        self.assertEqual(candidate.resume_text, "Original resume")
        self.assertEqual(candidate.source, Candidate.Source.MANUAL)

    def test_closed_job_rejects_public_application(self, mock_send):
        job = _make_job(status=JobOpening.Status.CLOSED)
        with self.assertRaises(services.JobNotOpen):
            services.submit_public_application(job, full_name="Ana Pop", email="ana@example.com")
        self.assertFalse(Application.objects.exists())
        mock_send.assert_not_called()


# ── Views ──────────────────────────────────────────────────────────────────────

@patch("applications.effects.send_notification", side_effect=_sent)
class ApplicationViewTests(TestCase):
    def setUp(self):
        self.user = get_user_model().objects.create_user(username="priya", password="test-pass-123")
        self.client.force_login(self.user)
        self.app = _make_application()

    def test_login_required(self, _mock_send):
        self.client.logout()
        resp = self.client.get(reverse("applications:list"))
        self.assertEqual(resp.status_code, 302)

    def test_list_filters_by_stage(self, _mock_send):
        _make_application(Stage.INTERVIEW, candidate=_make_candidate("b@example.com"), job=self.app.job)
        resp = self.client.get(reverse("applications:list"), {"stage": "interview"})
        results = resp.json()["results"]
        self.assertEqual(len(results), 1)
        self.assertEqual(results[0]["stage"], "interview")

    def test_detail_includes_comments(self, _mock_send):
        services.add_note(self.app, "Hello", user=self.user)
        resp = self.client.get(reverse("applications:detail", args=[self.app.pk]))
        data = resp.json()
        self.assertEqual(data["comments"][0]["text"], "Hello")
        self.assertEqual(data["days_in_stage"], 0)

    def test_transition_success(self, _mock_send):
        resp = self.client.post(
            reverse("applications:transition", args=[self.app.pk]),
            {"stage": "screening", "assignee": "Raj"},
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["application"]["stage"], "screening")
        self.assertNotIn("warning", resp.json())

    def test_transition_missing_assignee_returns_400(self, _mock_send):
        resp = self.client.post(
            reverse("applications:transition", args=[self.app.pk]), {"stage": "interview"},
        )
        self.assertEqual(resp.status_code, 400)
        self.assertIn("responsible for the Interview stage", resp.json()["error"])

    def test_reject_without_reason_returns_400(self, _mock_send):
        resp = self.client.post(reverse("applications:reject", args=[self.app.pk]), {"reason": ""})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["error"], "Please provide a rejection reason.")

    def test_terminal_violation_returns_409(self, _mock_send):
        hired = _make_application(Stage.HIRED, candidate=_make_candidate("h@example.com"), job=self.app.job)
        resp = self.client.post(
            reverse("applications:transition", args=[hired.pk]), {"stage": "offer-sent"},
        )
        self.assertEqual(resp.status_code, 409)

    def test_notification_failure_returns_warning(self, mock_send):
        mock_send.side_effect = _failed
        resp = self.client.post(
            reverse("applications:reject", args=[self.app.pk]), {"reason": "Not a fit"},
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["application"]["stage"], "rejected")
        self.assertEqual(resp.json()["warning"], "Stage updated, but the email may not have been sent")

    def test_revert_requires_reason(self, _mock_send):
        self.app.stage = Stage.INTERVIEW
        self.app.save()
        resp = self.client.post(reverse("applications:revert", args=[self.app.pk]), {"stage": "screening"})
        self.assertEqual(resp.status_code, 400)

    def test_reassign_and_note(self, _mock_send):
        resp = self.client.post(reverse("applications:reassign", args=[self.app.pk]), {"assignee": "Mira"})
        self.assertEqual(resp.json()["application"]["assigned_to"], "Mira")

        resp = self.client.post(reverse("applications:add_note", args=[self.app.pk]), {"note": "Nice"})
        self.assertEqual(resp.status_code, 201)

    def test_blank_note_returns_field_error(self, _mock_send):
        resp = self.client.post(reverse("applications:add_note", args=[self.app.pk]), {"note": "   "})
        self.assertEqual(resp.status_code, 400)
        self.assertIn("note", resp.json()["fields"])

    def test_toggle_hot(self, _mock_send):
        resp = self.client.post(reverse("applications:toggle_hot", args=[self.app.pk]))
        self.assertTrue(resp.json()["is_hot_applicant"])

    def test_manual_application(self, _mock_send):
        resp = self.client.post(
            reverse("applications:new"),
            {"job": self.app.job.pk, "full_name": "Ion Popescu", "email": "ion@example.com"},
        )
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(
            Candidate.objects.get(email="ion@example.com").source, Candidate.Source.MANUAL,
        )

    def test_public_apply_is_anonymous(self, _mock_send):
        self.client.logout()
        resp = self.client.post(
            reverse("applications:apply"),
            {"job": self.app.job.pk, "full_name": "Ion Popescu", "email": "ion@example.com"},
        )
        self.assertEqual(resp.status_code, 201)

    def test_public_apply_duplicate_returns_409(self, _mock_send):
        self.client.logout()
        resp = self.client.post(
            reverse("applications:apply"),
            {"job": self.app.job.pk, "full_name": "Ana Pop", "email": "ana@example.com"},
        )
        self.assertEqual(resp.status_code, 409)

    def test_public_apply_rejects_non_pdf_resume(self, _mock_send):
        self.client.logout()
        resp = self.client.post(
            reverse("applications:apply"),
            {
                "job": self.app.job.pk,
                "full_name": "Ion Popescu",
                "email": "ion@example.com",
                "resume": SimpleUploadedFile("cv.exe", b"MZ"),
            },
        )
        self.assertEqual(resp.status_code, 400)
        self.assertIn("resume", resp.json()["fields"])
