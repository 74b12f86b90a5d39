import logging
from datetime import timedelta
from unittest.mock import patch

import pytest
from conftest import make_device

from admin_auth.models.base import utcnow
from admin_auth.models.session import SESSION_LIFETIME
from admin_auth.scripts import security_jobs


def test_unknown_job_is_rejected(capsys):
    assert security_jobs.main(["sweep", "reboot"]) == 2
    assert "Unknown job(s): reboot" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_run_jobs_sweeps_and_monitors(make_account, db, session_factory, load_account, caplog):
    account = await make_account()
    stale = account.add_session(make_device(), utcnow() - SESSION_LIFETIME - timedelta(minutes=1))
    await db.commit()

    with patch.object(security_jobs, "async_session_factory", session_factory), caplog.at_level(
        logging.INFO, logger="admin_auth.jobs"
    ):
        await security_jobs.run_jobs(["sweep", "monitor"])

    assert (await load_account(account.id)).find_session(stale.session_id).is_active is False
    assert any("Security monitor: 0 locked accounts" in r.getMessage() for r in caplog.records)
