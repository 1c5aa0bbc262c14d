"""
Buffering decision: fuses governance signals into a single verdict.

Signals are checked in strict precedence; the first that fires wins and
nothing after it is evaluated:
  1. Halt (operator kill switch)         → buffer, latency reported as 0
  2. Manual override (forced buffering)  → buffer
  3. Simulated latency above threshold   → buffer
  4. Measured max latency above threshold → buffer
  5. Otherwise                           → pass through ("healthy")

Max rather than average is the trigger in step 4: a single recent spike is
enough to start buffering. All threshold comparisons are strict, so a value
equal to the threshold passes through.

evaluate() is a pure function. Inputs are not validated here.
"""

from dataclasses import dataclass, asdict


REASON_HALTED = "system halted"
REASON_OVERRIDE = "manual override"
REASON_HEALTHY = "healthy"


@dataclass(frozen=True)
class SignalSnapshot:
    """Governance signals at the moment of evaluation."""
    avg_latency_ms: int = 0       # Measured mean over the policy window
    max_latency_ms: int = 0       # Measured worst case over the policy window
    threshold_ms: int = 5000      # Buffering trigger (strict >)
    forced: bool = False          # Manual override flag
    simulated_ms: int = 0         # Operator-injected latency, 0 = off
    halted: bool = False          # System halt flag


@dataclass(frozen=True)
class Verdict:
    buffering: bool
    reason: str
    latency_ms: int

    def to_dict(self) -> dict:
        return asdict(self)


def evaluate(snapshot: SignalSnapshot) -> Verdict:
    """Return the buffer/pass verdict for a signal snapshot."""
    # 1. Halt dominates every other signal
    if snapshot.halted:
        return Verdict(buffering=True, reason=REASON_HALTED, latency_ms=0)

    # 2. Manual override
    if snapshot.forced:
        return Verdict(
            buffering=True,
            reason=REASON_OVERRIDE,
            latency_ms=snapshot.avg_latency_ms,
        )

    # 3. Simulated latency
    if snapshot.simulated_ms > snapshot.threshold_ms:
        return Verdict(
            buffering=True,
            reason=f"simulated {snapshot.simulated_ms}ms",
            latency_ms=snapshot.simulated_ms,
        )

    # 4. Measured worst-case latency
    if snapshot.max_latency_ms > snapshot.threshold_ms:
        return Verdict(
            buffering=True,
            reason=f"latency {snapshot.max_latency_ms}ms > {snapshot.threshold_ms}ms",
            latency_ms=snapshot.max_latency_ms,
        )

    return Verdict(
        buffering=False,
        reason=REASON_HEALTHY,
        latency_ms=snapshot.avg_latency_ms,
    )
