from __future__ import annotations

from uuid import UUID, uuid4

import pytest

from recoverymatch import main as main_module
from recoverymatch.app import ConnectionServices, build_services
from recoverymatch.domain.model import GroupStatus, RequestStatus
from tests.helpers.connections import FakeUnitOfWorkFactory


@pytest.fixture
def services(
    monkeypatch: pytest.MonkeyPatch, fake_unit_of_work: FakeUnitOfWorkFactory
) -> ConnectionServices:
    built = build_services(unit_of_work_factory=fake_unit_of_work)
    monkeypatch.setattr(main_module, "build_services", lambda: built)
    return built


def _run(capsys: pytest.CaptureFixture[str], *argv: str) -> list[str]:
    main_module.main(list(argv))
    return capsys.readouterr().out.splitlines()


def _create(capsys: pytest.CaptureFixture[str], name: str, *roles: str) -> UUID:
    role_args = [arg for role in roles for arg in ("--role", role)]
    (line,) = _run(capsys, "profile", "create", "--name", name, *role_args)
    return UUID(line)


def test_submit_approve_and_reveal_contact(
    services: ConnectionServices,
    fake_unit_of_work: FakeUnitOfWorkFactory,
    capsys: pytest.CaptureFixture[str],
) -> None:
    applicant = _create(capsys, "Alex", "applicant")
    peer_out = _run(
        capsys,
        "profile",
        "create",
        "--name",
        "Pat",
        "--role",
        "peer",
        "--contact",
        "peer_profile:555-0101:",
    )
    peer = UUID(peer_out[0])

    submitted = _run(
        capsys, "request", "submit", str(applicant), str(peer), "--type", "peer_support"
    )
    request_id = UUID(submitted[0].split()[0])

    approved = _run(capsys, "request", "approve", str(request_id), "--as", str(peer))
    assert "matched" in approved[0]
    group_id = UUID(approved[1].split()[0])

    contact = _run(capsys, "group", "contact", str(group_id), "--as", str(applicant))
    assert contact == ["Pat (peer_support_id)", "email: -", "phone: 555-0101"]

    store = fake_unit_of_work.store
    assert store.request(request_id).status is RequestStatus.MATCHED
    assert store.group(group_id).status is GroupStatus.FORMING


def test_contact_for_non_member_prints_denial(
    services: ConnectionServices, capsys: pytest.CaptureFixture[str]
) -> None:
    assert _run(capsys, "group", "contact", str(uuid4()), "--as", str(uuid4())) == [
        "Denied: group_not_found"
    ]


def test_engine_errors_exit_with_code_one(
    services: ConnectionServices, capsys: pytest.CaptureFixture[str]
) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main_module.main(["request", "approve", str(uuid4()), "--as", str(uuid4())])

    assert excinfo.value.code == 1
    assert "[not_found]" in capsys.readouterr().err


def test_invalid_id_is_a_usage_error(services: ConnectionServices) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main_module.main(["request", "cancel", "not-a-uuid", "--as", str(uuid4())])

    assert excinfo.value.code == 2


def test_unknown_request_type_is_a_usage_error(services: ConnectionServices) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main_module.main(["request", "submit", str(uuid4()), str(uuid4()), "--type", "dating"])

    assert excinfo.value.code == 2


def test_list_and_stats(
    services: ConnectionServices, capsys: pytest.CaptureFixture[str]
) -> None:
    applicant = _create(capsys, "Alex", "applicant")
    other = _create(capsys, "Blair", "applicant")
    _run(capsys, "request", "submit", str(other), str(applicant), "--type", "roommate")

    listed = _run(capsys, "request", "list", str(applicant), "--direction", "received")
    stats = _run(capsys, "request", "stats", str(applicant))

    assert len(listed) == 1
    assert "pending" in listed[0]
    assert "pending for you: 1" in stats


def test_submit_with_score_prints_percentage(
    services: ConnectionServices,
    fake_unit_of_work: FakeUnitOfWorkFactory,
    capsys: pytest.CaptureFixture[str],
) -> None:
    applicant = _create(capsys, "Alex", "applicant")
    other = _create(capsys, "Blair", "applicant")

    (line,) = _run(
        capsys,
        "request",
        "submit",
        str(applicant),
        str(other),
        "--type",
        "roommate",
        "--score",
        "92",
    )

    assert "score=92%" in line
    assert fake_unit_of_work.store.request(UUID(line.split()[0])).match_score == 92


@pytest.mark.parametrize("score", ["high", "120"])
def test_invalid_score_is_a_usage_error(services: ConnectionServices, score: str) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main_module.main(
            [
                "request",
                "submit",
                str(uuid4()),
                str(uuid4()),
                "--type",
                "roommate",
                "--score",
                score,
            ]
        )

    assert excinfo.value.code == 2


def test_no_retry_fails_on_first_store_error(
    services: ConnectionServices,
    fake_unit_of_work: FakeUnitOfWorkFactory,
    capsys: pytest.CaptureFixture[str],
) -> None:
    applicant = _create(capsys, "Alex", "applicant")
    other = _create(capsys, "Blair", "applicant")
    fake_unit_of_work.store.fail("commit", times=2)

    with pytest.raises(SystemExit) as excinfo:
        main_module.main(
            ["--no-retry", "request", "submit", str(applicant), str(other), "--type", "roommate"]
        )

    assert excinfo.value.code == 1
    assert "[store_unavailable]" in capsys.readouterr().err
    # one attempt consumed one injected failure; a retry would have used the second
    assert fake_unit_of_work.store.failures["commit"] == 1
    assert fake_unit_of_work.store.requests == {}
