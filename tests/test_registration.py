"""
Operator Registration Flow Test Suite

Runs the five-step handshake against in-memory contract doubles.
"""

import unittest

from web3.exceptions import ContractLogicError

from avs_operator import (
    DigestError,
    OperatorConfig,
    OperatorIdentity,
    OperatorRegistrationFlow,
    SignatureMismatchError,
    TransactionFailedError,
    register_operator,
    verify_digest_signature,
)
from avs_operator.registration import ZERO_ADDRESS

from .fakes import (
    OPERATOR_ADDRESS,
    OPERATOR_KEY,
    OTHER_KEY,
    SERVICE_MANAGER,
    expected_digest,
    make_contracts,
    make_env,
)

FIXED_NOW = 1_700_000_000.75
FIXED_SALT = bytes(range(32))


def build_flow(contracts, identity=None, **kwargs):
    return OperatorRegistrationFlow(
        identity=identity or OperatorIdentity.from_private_key(OPERATOR_KEY),
        contracts=contracts,
        service_manager=SERVICE_MANAGER,
        clock=kwargs.pop("clock", lambda: FIXED_NOW),
        salt_factory=kwargs.pop("salt_factory", lambda: FIXED_SALT),
        **kwargs
    )


class TestHappyPath(unittest.TestCase):

    def setUp(self):
        self.contracts, self.log = make_contracts(nonce=5)
        self.result = build_flow(self.contracts).run()

    def test_steps_run_in_order(self):
        names = [entry[0] for entry in self.log if entry[0] != "wait"]
        self.assertEqual(names, [
            "registerAsOperator",
            "get_transaction_count",
            "initialize",
            "calculateOperatorAVSRegistrationDigestHash",
            "registerOperatorWithSignature",
        ])

    def test_every_transaction_is_awaited(self):
        waits = [entry for entry in self.log if entry[0] == "wait"]
        self.assertEqual(len(waits), 3)

    def test_core_registration_arguments(self):
        self.assertEqual(
            self.contracts.delegation_manager.calls,
            [(ZERO_ADDRESS, 0, "")]
        )

    def test_directory_initialized_with_snapshot_nonce(self):
        self.assertEqual(
            self.contracts.avs_directory.initialize_calls,
            [(OPERATOR_ADDRESS, 0, 5)]
        )
        self.assertEqual(self.result.directory_nonce, 5)

    def test_registry_called_exactly_once(self):
        self.assertEqual(len(self.contracts.stake_registry.calls), 1)
        _, signing_key = self.contracts.stake_registry.calls[0]
        self.assertEqual(signing_key, OPERATOR_ADDRESS)

    def test_envelope_matches_digest_inputs(self):
        envelope, _ = self.contracts.stake_registry.calls[0]
        digest_call = self.contracts.avs_directory.digest_calls[0]

        self.assertEqual(envelope.salt, digest_call["salt"])
        self.assertEqual(envelope.expiry, digest_call["expiry"])
        self.assertEqual(digest_call["operator"], OPERATOR_ADDRESS)
        self.assertEqual(digest_call["avs"], SERVICE_MANAGER)

    def test_expiry_is_whole_seconds_plus_window(self):
        envelope, _ = self.contracts.stake_registry.calls[0]
        self.assertEqual(envelope.expiry, 1_700_000_000 + 3600)

    def test_envelope_signature_is_over_this_runs_digest(self):
        envelope, _ = self.contracts.stake_registry.calls[0]
        digest = self.contracts.avs_directory.digest_calls[0]["digest"]

        self.assertEqual(digest, expected_digest(
            OPERATOR_ADDRESS, SERVICE_MANAGER, FIXED_SALT, 1_700_003_600
        ))
        self.assertTrue(verify_digest_signature(digest, envelope.signature, OPERATOR_ADDRESS))
        self.assertEqual(self.result.digest, digest)

    def test_result_records_run(self):
        self.assertEqual(self.result.operator, OPERATOR_ADDRESS)
        self.assertFalse(self.result.core_registration_skipped)
        self.assertEqual(self.result.core_tx_hash, "0x" + "a1" * 32)
        self.assertEqual(self.result.directory_tx_hash, "0x" + "b2" * 32)
        self.assertEqual(self.result.registry_tx_hash, "0x" + "c3" * 32)
        self.assertTrue(self.result.run_id)

        d = self.result.to_dict()
        self.assertEqual(d["envelope"]["expiry"], 1_700_003_600)
        self.assertEqual(d["envelope"]["salt"], "0x" + FIXED_SALT.hex())
        self.assertEqual(len(d["envelope"]["signature"]), 2 + 65 * 2)


class TestCoreRegistrationTolerated(unittest.TestCase):

    def test_already_registered_is_logged_and_flow_continues(self):
        error = ContractLogicError("execution reverted: operator has already registered")
        contracts, log = make_contracts(core_error=error)

        with self.assertLogs("avs_operator.events", level="WARNING") as logs:
            result = build_flow(contracts).run()

        self.assertTrue(any("CORE_REGISTRATION_SKIPPED" in line for line in logs.output))
        self.assertTrue(result.core_registration_skipped)
        self.assertIn("already registered", result.core_registration_error)
        self.assertIsNone(result.core_tx_hash)
        self.assertEqual(len(contracts.avs_directory.initialize_calls), 1)
        self.assertEqual(len(contracts.stake_registry.calls), 1)

    def test_reverted_core_receipt_is_tolerated(self):
        contracts, log = make_contracts()
        contracts.delegation_manager.status = 0

        result = build_flow(contracts).run()

        self.assertTrue(result.core_registration_skipped)
        self.assertEqual(len(contracts.stake_registry.calls), 1)

    def test_unexpected_core_error_propagates(self):
        contracts, log = make_contracts(core_error=RuntimeError("boom"))

        with self.assertRaises(RuntimeError):
            build_flow(contracts).run()

        self.assertEqual(contracts.avs_directory.initialize_calls, [])


class TestDirectoryStep(unittest.TestCase):

    def test_returns_nonce_and_tx_hash(self):
        contracts, log = make_contracts(nonce=8)

        nonce, tx_hash = build_flow(contracts).initialize_directory()

        self.assertEqual(nonce, 8)
        self.assertEqual(tx_hash, "0x" + "b2" * 32)


class TestFatalFailures(unittest.TestCase):

    def test_directory_revert_aborts_before_digest(self):
        contracts, log = make_contracts(
            initialize_error=ContractLogicError("execution reverted: Initializable: already initialized")
        )

        with self.assertRaises(ContractLogicError):
            build_flow(contracts).run()

        self.assertEqual(contracts.avs_directory.digest_calls, [])
        self.assertEqual(contracts.stake_registry.calls, [])

    def test_registry_revert_propagates(self):
        contracts, log = make_contracts(registry_status=0)

        with self.assertRaises(TransactionFailedError) as ctx:
            build_flow(contracts).run()

        self.assertEqual(ctx.exception.tx_hash, "0x" + "c3" * 32)

    def test_short_digest_rejected(self):
        contracts, log = make_contracts(digest_override=b"\x01" * 31)

        with self.assertRaises(DigestError):
            build_flow(contracts).run()

        self.assertEqual(contracts.stake_registry.calls, [])

    def test_signature_from_wrong_key_never_submitted(self):
        contracts, log = make_contracts()
        mismatched = OperatorIdentity(
            address=OPERATOR_ADDRESS,
            account=OperatorIdentity.from_private_key(OTHER_KEY).account,
        )

        with self.assertRaises(SignatureMismatchError):
            build_flow(contracts, identity=mismatched).run()

        self.assertEqual(contracts.stake_registry.calls, [])


class TestNonceSnapshot(unittest.TestCase):

    def test_nonce_read_after_core_step_and_before_initialize(self):
        contracts, log = make_contracts(nonce=12)
        build_flow(contracts).run()

        names = [entry[0] for entry in log]
        snapshot = names.index("get_transaction_count")
        self.assertLess(names.index("registerAsOperator"), snapshot)
        self.assertEqual(names[snapshot + 1], "initialize")
        self.assertEqual(log[snapshot + 1], ("initialize", 12))

    def test_nonce_is_the_snapshot_value_not_inferred(self):
        contracts, log = make_contracts(nonce=0)
        contracts.chain.nonce = 41
        build_flow(contracts).run()

        self.assertEqual(contracts.avs_directory.initialize_calls[0][2], 41)


class TestFreshParametersPerRun(unittest.TestCase):

    def test_default_salt_differs_between_runs(self):
        contracts, log = make_contracts()
        flow = OperatorRegistrationFlow(
            identity=OperatorIdentity.from_private_key(OPERATOR_KEY),
            contracts=contracts,
            service_manager=SERVICE_MANAGER,
        )
        flow.run()
        flow.run()

        salts = [call["salt"] for call in contracts.avs_directory.digest_calls]
        self.assertEqual(len(salts), 2)
        self.assertNotEqual(salts[0], salts[1])
        for salt in salts:
            self.assertEqual(len(salt), 32)


class TestRegisterOperatorEntryPoint(unittest.TestCase):

    def test_uses_explicit_config(self):
        config = OperatorConfig.from_env(make_env(EXPIRY_WINDOW_SECONDS="600"))
        contracts, log = make_contracts(nonce=3)

        result = register_operator(config, contracts)

        self.assertEqual(result.operator, OPERATOR_ADDRESS)
        self.assertEqual(result.service_manager, SERVICE_MANAGER)
        envelope, _ = contracts.stake_registry.calls[0]
        digest_call = contracts.avs_directory.digest_calls[0]
        self.assertEqual(envelope.expiry, digest_call["expiry"])
        self.assertEqual(envelope, result.envelope)


if __name__ == "__main__":
    unittest.main()
