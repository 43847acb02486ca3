import pytest

from escrow.jobs import worker


@pytest.mark.asyncio
async def test_run_worker_runs_job(monkeypatch):
    called = {"ok": False}

    async def dummy_job():
        called["ok"] = True

    monkeypatch.setitem(worker.JOB_REGISTRY, "dummy", dummy_job)

    await worker.run_worker("dummy")

    assert called["ok"] is True


@pytest.mark.asyncio
async def test_run_worker_unknown_job():
    with pytest.raises(ValueError):
        await worker.run_worker("missing")


def test_registry_has_sweeps():
    assert set(worker.JOB_REGISTRY) == {"inactivity_disclosure", "inactivity_reminder"}


def test_resolve_job_name_from_env(monkeypatch):
    monkeypatch.setattr(worker.sys, "argv", ["escrow-worker"])
    monkeypatch.setenv("WORKER_JOB", " Inactivity_Disclosure ")

    assert worker._resolve_job_name() == "inactivity_disclosure"
