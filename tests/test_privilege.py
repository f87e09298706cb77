import logging

import pytest

from lecturegate.models.domain import Role


class TestVerifyPrivilege:
    @pytest.mark.asyncio
    async def test_all_layers_agree(self, verifier, admin, teacher):
        assert await verifier.verify_privilege(admin.id)
        assert await verifier.verify_privilege(teacher.id)

    @pytest.mark.asyncio
    async def test_empty_uid(self, verifier):
        assert not await verifier.verify_privilege(None)
        assert not await verifier.verify_privilege("")

    @pytest.mark.asyncio
    async def test_student_is_not_privileged(self, verifier, student):
        assert not await verifier.verify_privilege(student.id)

    @pytest.mark.asyncio
    async def test_claim_mismatch_denies_and_logs(self, gateway, verifier, caplog):
        # profile says admin, the auth claim says student
        gateway.add_user("u1", role=Role.ADMIN, email="owner@academy.test", claim=Role.STUDENT)
        with caplog.at_level(logging.WARNING, logger="auth"):
            assert not await verifier.verify_privilege("u1")
        assert "security: privilege mismatch" in caplog.text
        assert "role_claim" in caplog.text

    @pytest.mark.asyncio
    async def test_missing_role_grant_denies(self, gateway, verifier):
        gateway.add_user("u1", role=Role.ADMIN, email="owner@academy.test", grants=set())
        assert not await verifier.verify_privilege("u1")

    @pytest.mark.asyncio
    async def test_email_not_allowlisted_denies(self, gateway, verifier):
        gateway.add_user("u1", role=Role.ADMIN, email="intruder@elsewhere.test")
        assert not await verifier.verify_privilege("u1")

    @pytest.mark.asyncio
    async def test_allowlist_is_case_insensitive(self, gateway, verifier):
        gateway.add_user("u1", role=Role.ADMIN, email="  Owner@Academy.TEST ")
        assert await verifier.verify_privilege("u1")

    @pytest.mark.asyncio
    async def test_teacher_fails_admin_only_check(self, verifier, teacher):
        assert not await verifier.verify_privilege(teacher.id, {Role.ADMIN})

    @pytest.mark.asyncio
    async def test_store_failure_denies(self, gateway, verifier, admin):
        gateway.failing.add("list_role_grants")
        assert not await verifier.verify_privilege(admin.id)

    @pytest.mark.asyncio
    async def test_store_timeout_denies(self, gateway, verifier, admin):
        gateway.delays["get_account_email"] = 1.0
        assert not await verifier.verify_privilege(admin.id)

    @pytest.mark.asyncio
    async def test_never_cached(self, gateway, verifier, admin):
        assert await verifier.verify_privilege(admin.id)
        gateway.grants[admin.id] = set()
        assert not await verifier.verify_privilege(admin.id)
