import pytest
from click.testing import CliRunner

from wpr.cli.main import cli


@pytest.fixture
def run():
    runner = CliRunner()

    def _run(*args):
        return runner.invoke(cli, list(args))

    return _run


@pytest.mark.unit
def test_help_does_not_require_config(run, wpr_home):
    result = run("--help")
    assert result.exit_code == 0
    assert "Usage:" in result.output
    assert "copy-from-the-past" in result.output
    assert not (wpr_home / "config.toml").exists()


@pytest.mark.unit
def test_first_run_creates_config(run, frozen_time, wpr_home):
    result = run("weekly")
    assert result.exit_code == 0, result.output
    assert (wpr_home / "config.toml").is_file()
    assert "Week 1 - 2024-01-01...2024-01-07:" in result.output


@pytest.mark.unit
def test_add_then_weekly(run, frozen_time, wpr_home):
    result = run("-v", "add", "buy", "milk")
    assert result.exit_code == 0, result.output
    assert "Task successfully created." in result.output
    assert (wpr_home / "2024-01-01.todolist").read_text() == "2024-01-01:A:buy milk\n"

    result = run("weekly")
    assert "1. 2024-01-01|WORK: buy milk" in result.output


@pytest.mark.unit
def test_add_is_quiet_without_verbose(run, frozen_time):
    result = run("add", "quiet")
    assert result.exit_code == 0
    assert result.output == ""


@pytest.mark.unit
def test_title_with_brackets_is_printed_literally(run, frozen_time):
    run("add", "[red]not markup[/red]")
    result = run("weekly")
    assert "[red]not markup[/red]" in result.output


@pytest.mark.unit
def test_complete(run, frozen_time):
    run("add", "one")
    run("add", "two")

    result = run("-v", "complete", "2")
    assert result.exit_code == 0, result.output
    assert "Task with id = 2 is completed." in result.output

    result = run("weekly")
    assert "1. 2024-01-01|WORK: one" in result.output
    assert "2. 2024-01-01|DONE: two" in result.output

    result = run("complete", "2")
    assert result.exit_code == 1
    assert "already completed" in result.output


@pytest.mark.unit
@pytest.mark.parametrize("number", ["0", "3", "-1"])
def test_complete_bad_index(run, frozen_time, number):
    run("add", "one")
    result = run("complete", "--", number)
    assert result.exit_code == 1
    assert "cannot identify a task" in result.output


@pytest.mark.unit
def test_past_week_is_read_only(run, frozen_time):
    result = run("-d", "2023-12-27", "add", "late")
    assert result.exit_code == 1
    assert "can edit only current weekly plan" in result.output

    result = run("-p", "set-memo", "late")
    assert result.exit_code == 1


@pytest.mark.unit
def test_previous_week_selects_last_week(run, freeze_at):
    with freeze_at("2024-01-03 10:00:00"):
        result = run("-p", "weekly")
    assert result.exit_code == 0, result.output
    assert "2023-12-25...2023-12-31" in result.output


@pytest.mark.unit
@pytest.mark.parametrize(
    "args",
    [
        ["-d", "2024-1-1", "weekly"],
        ["-d", "2024-02-30", "weekly"],
        ["-d", "2024-01-01", "-p", "weekly"],
        ["-g", "work", "-b", ".", "weekly"],
        ["-b", "/definitely/not/here", "weekly"],
        ["-g", "..", "weekly"],
    ],
)
def test_bad_options(run, frozen_time, args):
    result = run(*args)
    assert result.exit_code != 0


@pytest.mark.unit
def test_today_and_daily(run, freeze_at):
    with freeze_at("2024-01-01 09:00:00"):
        run("add", "monday task")
    with freeze_at("2024-01-02 09:00:00"):
        run("add", "tuesday task")

        result = run("today")
        assert "Active tasks scheduled to be done on 2024-01-02:" in result.output
        assert "2. 2024-01-02: tuesday task" in result.output
        assert "monday task" not in result.output

        result = run("daily")
        assert "Proposed todo plan up to 2024-01-02:" in result.output
        assert "1. 2024-01-01: monday task" in result.output
        assert "2. 2024-01-02: tuesday task" in result.output

        result = run("-d", "2024-01-01", "daily")
        assert "tuesday task" not in result.output


@pytest.mark.unit
def test_summary(run, frozen_time):
    run("add", "shipped")
    run("add", "pending")
    run("complete", "1")

    result = run("summary")
    assert result.exit_code == 0
    out = result.output
    assert out.index("COMPLETED:") < out.index("- shipped")
    assert out.index("UNCOMPLETED TASKS OR OPPORTUNITIES:") < out.index("- pending")


@pytest.mark.unit
def test_memo(run, frozen_time, wpr_home):
    result = run("-v", "memo")
    assert "No memo record found for this week." in result.output

    run("set-memo", "call", "the", "plumber")
    result = run("memo")
    assert "Memo text:" in result.output
    assert "call the plumber" in result.output

    run("set-memo")
    assert not (wpr_home / "2024-01-01.memo").exists()


@pytest.mark.unit
def test_groups(run, frozen_time, wpr_home):
    result = run("-v", "groups")
    assert "No groups found." in result.output

    result = run("-g", "work", "add", "deploy")
    assert result.exit_code == 0
    assert (wpr_home / "work" / "2024-01-01.todolist").is_file()

    result = run("groups")
    assert result.output.split() == ["work"]

    result = run("-g", "work", "weekly")
    assert "deploy" in result.output
    assert "deploy" not in run("weekly").output


@pytest.mark.unit
def test_root_option(run, frozen_time, tmp_path):
    other = tmp_path / "other"
    other.mkdir()
    result = run("-b", str(other), "add", "elsewhere")
    assert result.exit_code == 0, result.output
    assert (other / "2024-01-01.todolist").read_text() == "2024-01-01:A:elsewhere\n"


@pytest.mark.unit
def test_checksum_failure_stops_with_hint(run, frozen_time, wpr_home):
    run("add", "buy milk")
    (wpr_home / "2024-01-01.todolist").write_text("2024-01-01:C:buy milk\n")

    result = run("weekly")
    assert result.exit_code == 1
    assert "checksum verification failed" in result.output
    assert "Try to check manually" in result.output


@pytest.mark.unit
def test_corrupt_record_stops(run, frozen_time, wpr_home):
    wpr_home.mkdir(parents=True, exist_ok=True)
    (wpr_home / "2024-01-01.todolist").write_text("nonsense\n")
    result = run("weekly")
    assert result.exit_code == 1
    assert "nonsense" in result.output


@pytest.mark.unit
def test_copy_from_the_past(run, freeze_at):
    with freeze_at("2023-12-28 10:00:00"):
        run("add", "finished")
        run("add", "unfinished")
        run("complete", "1")

    with freeze_at("2024-01-03 10:00:00"):
        result = run("-v", "copy-from-the-past")
        assert result.exit_code == 0, result.output
        assert "1 task(s) copied" in result.output

        result = run("weekly")
        assert "1. 2024-01-03|WORK: unfinished" in result.output
        assert "finished" not in result.output.replace("unfinished", "")

        result = run("copy-from-the-past")
        assert result.exit_code == 1
        assert "only if the current week is empty" in result.output


@pytest.mark.unit
def test_weeks_overview(run, frozen_time):
    run("add", "a")
    run("complete", "1")
    run("add", "b")

    result = run("weeks", "--count", "2")
    assert result.exit_code == 0, result.output
    lines = result.output.splitlines()
    assert lines == [
        "Week 52 - 2023-12-25...2023-12-31: no plan",
        "Week 1 - 2024-01-01...2024-01-07: 1/2 done",
    ]


@pytest.mark.unit
def test_version(run):
    result = run("--version")
    assert result.exit_code == 0
    assert result.output.startswith("wpr version ")


@pytest.mark.unit
def test_weeks_with_bad_group_fails_cleanly(run, frozen_time):
    result = run("-g", "..", "weeks")
    assert result.exit_code == 1
    assert isinstance(result.exception, SystemExit)
    assert "invalid group name" in result.output


@pytest.mark.unit
def test_unreadable_last_week_does_not_block_monday(run, freeze_at, wpr_home):
    with freeze_at("2023-12-27 10:00:00"):
        run("add", "old task")
    (wpr_home / "config.toml").write_text(
        "[weekly]\nauto_copy_on_monday = true\n", encoding="utf-8"
    )
    (wpr_home / "2023-12-25.checksum").write_text("1", encoding="utf-8")

    with freeze_at("2024-01-01 10:00:00"):
        result = run("weekly")
    assert result.exit_code == 0, result.output
    assert "checksum verification failed" not in result.output
    assert "Week 1 - 2024-01-01...2024-01-07:" in result.output
    assert "old task" not in result.output
