"""
DietClaim: Basic Pipeline Example

Demonstrates:
- Wiring a pipeline with in-memory collaborators
- Verifying a 30-day period
- Minting a proof from the verification
- Opening and settling a discount claim
- Checking the signed audit journal
"""

from dietclaim import (
    DailyLog,
    Nutrient,
    PipelineConfig,
    PipelineContext,
    Plan,
    PlanRule,
)
from dietclaim.core.exceptions import DietClaimError


ADMIN   = "treasury"
USER    = "alice"
INSURER = "acme-health"


def main():
    """End-to-end DietClaim run."""

    print("=" * 60)
    print("DietClaim: Basic Pipeline Example")
    print("=" * 60)
    print()

    # 1️⃣ Wire the pipeline
    print("1️⃣ Building pipeline...")
    ctx = PipelineContext.build(PipelineConfig(admin=ADMIN, height=1000))
    ctx.value_ledger.credit(USER, 10_000)

    # The default proof fee (200) is above any score; lower it so proofs can be minted
    ctx.issuer.set_proof_fee(ADMIN, 50)
    ctx.settler.register_insurer(ADMIN, INSURER)
    print(f"✅ {ctx!r}")
    print()

    # 2️⃣ Seed plan, subscription and logs
    print("2️⃣ Seeding plan and daily logs...")
    ctx.plans.add_plan(1, Plan(
        rules=(
            PlanRule("calories", 1500, 2500),
            PlanRule("protein", 50, 200),
        ),
        threshold=80,
    ))
    ctx.profiles.subscribe(USER, 1)
    ctx.logs.add_logs(
        USER,
        range(100, 127),
        DailyLog(hash=b"\x01", calories=2100, nutrients=(Nutrient("protein", 110),)),
    )
    print("✅ 27 compliant days logged in [100, 130)")
    print()

    # 3️⃣ Verify
    print("3️⃣ Verifying period...")
    score = ctx.verifier.verify_period(USER, 100, 130)
    status = ctx.verifier.get_verification_status(USER, 100, 130)
    print(f"  Score:  {score}")
    print(f"  Passed: {status}")
    print()

    # 4️⃣ Proof
    print("4️⃣ Generating proof...")
    proof_id = ctx.issuer.generate_proof(USER, 100, 130, 1, bytes.fromhex("c0ffee"))
    proof = ctx.issuer.get_proof(proof_id)
    print(f"  Proof #{proof_id} valid until height {proof.expiry}")
    print()

    # 5️⃣ Claim
    print("5️⃣ Submitting and settling claim...")
    claim_id = ctx.settler.submit_claim(USER, proof_id, INSURER, 2_500)
    ctx.settler.approve_claim(INSURER, claim_id)
    print(f"  Claim #{claim_id}: {ctx.settler.get_claim(claim_id).status.value}")

    try:
        ctx.settler.submit_claim(USER, proof_id, INSURER, 2_500)
    except DietClaimError as e:
        print(f"  Duplicate rejected: {e.name}")
    print()

    # 6️⃣ Fees and journal
    print("6️⃣ Fees and journal...")
    for transfer in ctx.value_ledger.transfers:
        print(f"  {transfer.sender} → {transfer.recipient}: {transfer.amount}")
    stats = ctx.journal.get_stats()
    print(f"  Journal entries: {stats['total_entries']}")
    print(f"  Chain intact:    {ctx.journal.verify_chain()}")
    print()

    print("=" * 60)
    print("✅ Pipeline complete!")
    print("=" * 60)
    print()
    print("Next steps:")
    print("  - Run a scenario:  dietclaim run examples/scenario.yaml")
    print("  - Keep a journal:  dietclaim run examples/scenario.yaml --journal audit.jsonl")
    print("  - Verify it:       dietclaim journal verify audit.jsonl")


if __name__ == "__main__":
    main()
