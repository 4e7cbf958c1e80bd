from datetime import datetime, timedelta, timezone

import pytest

from edunity_intake.core.lead_types import TEACHER
from edunity_intake.models import Lead, LeadArchive
from edunity_intake.scripts.reconcile_leads import build_parser, main, run

T0 = datetime(2025, 3, 1, tzinfo=timezone.utc)


@pytest.fixture
def seed_duplicates(add_rows, make_lead):
    async def _seed():
        await add_rows(
            make_lead("EDU-ON-T-00101", "a@x.com", "0801", created_at=T0),
            make_lead(
                "EDU-ON-T-00102", "a@x.com", "0802", created_at=T0 + timedelta(hours=1)
            ),
        )

    return _seed


class TestParser:
    def test_defaults_to_dry_run(self):
        args = build_parser().parse_args([])
        assert args.apply is False
        assert args.lead_type is None
        assert args.batch_size is None

    def test_flags(self):
        args = build_parser().parse_args(
            ["--apply", "--lead-type", "parent", "--batch-size", "50"]
        )
        assert (args.apply, args.lead_type, args.batch_size) == (True, "parent", 50)

    def test_unknown_lead_type_exits_with_error(self, capsys):
        assert main(["--lead-type", "school"]) == 1
        assert "Unknown lead type" in capsys.readouterr().err


class TestRun:
    @pytest.mark.asyncio
    async def test_empty_collection(self, session_factory):
        lines = []

        await run(session_factory, TEACHER, apply=False, out=lines.append)

        assert lines == [
            "[scan] lead_type=teacher mode=DRY_RUN",
            "[result] No leads found, nothing to reconcile.",
        ]

    @pytest.mark.asyncio
    async def test_dry_run_prints_plan_and_writes_nothing(
        self, session_factory, seed_duplicates, load_all
    ):
        await seed_duplicates()
        lines = []

        await run(session_factory, TEACHER, apply=False, out=lines.append)

        assert lines[0] == "[scan] lead_type=teacher mode=DRY_RUN"
        assert "[summary] total_leads=2" in lines
        assert "[summary] leads_to_archive_and_delete=1" in lines
        assert (
            "[archive] EDU-ON-T-00102 duplicate_of=EDU-ON-T-00101 "
            "email=a@x.com phone=0802"
        ) in lines
        assert "[counter] unset -> 101" in lines
        assert lines[-1] == "[dry-run] No writes made. Run with --apply to execute."
        assert len(await load_all(Lead)) == 2

    @pytest.mark.asyncio
    async def test_apply_archives_duplicates(
        self, session_factory, seed_duplicates, load_all
    ):
        await seed_duplicates()
        lines = []

        plan = await run(
            session_factory, TEACHER, apply=True, batch_size=3, out=lines.append
        )

        assert lines[0] == "[scan] lead_type=teacher mode=APPLY"
        assert lines[-1] == f"[apply] completed. write_ops={plan.pending_mutations}"
        assert [lead.lead_id for lead in await load_all(Lead)] == ["EDU-ON-T-00101"]
        assert len(await load_all(LeadArchive)) == 1

    @pytest.mark.asyncio
    async def test_plan_lines_precede_apply(self, session_factory, seed_duplicates):
        await seed_duplicates()
        lines = []

        await run(session_factory, TEACHER, apply=True, out=lines.append)

        archive_index = next(i for i, l in enumerate(lines) if l.startswith("[archive]"))
        apply_index = next(i for i, l in enumerate(lines) if l.startswith("[apply]"))
        assert archive_index < apply_index

    @pytest.mark.asyncio
    async def test_apply_refreshes_cached_contact_claims(
        self, session_factory, seed_duplicates, mock_cache, mock_redis
    ):
        await seed_duplicates()

        await run(
            session_factory, TEACHER, apply=True, out=lambda line: None, cache=mock_cache
        )

        cached = {call.args[0]: call.args[2] for call in mock_redis.setex.await_args_list}
        assert cached == {
            "lead_contact:teacher:email:a@x.com": "EDU-ON-T-00101",
            "lead_contact:teacher:phone:0801": "EDU-ON-T-00101",
        }

    @pytest.mark.asyncio
    async def test_dry_run_leaves_cache_alone(
        self, session_factory, seed_duplicates, mock_cache, mock_redis
    ):
        await seed_duplicates()

        await run(
            session_factory, TEACHER, apply=False, out=lambda line: None, cache=mock_cache
        )

        mock_redis.setex.assert_not_called()
        mock_redis.delete.assert_not_called()
