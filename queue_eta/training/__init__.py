"""
Training Doctrine

One `train` invocation == one TrainingSession.

------------------------------------------------------------
Session lifecycle
------------------------------------------------------------

    IDLE -> RUNNING -> HALTED | FAILED

- All validation (halt conditions, option conflicts, dataset emptiness,
  model shape) happens in IDLE. A rejected session executes zero training
  steps and never touches the model file.
- RUNNING is strictly sequential: the weights after step n depend on the
  weights after step n-1.
- Every halt persists the model. With the loop flag a halt is only a
  checkpoint, and a new iteration starts over the same dataset until the
  session is cancelled.
- Divergence (non-finite error or weights) is the only fatal condition
  mid-run. It restores the last persisted weights in memory and does NOT
  save: the file on disk is always the latest valid checkpoint.

------------------------------------------------------------
Halt conditions
------------------------------------------------------------

EpochCount(n), WallClockDuration(seconds), TargetError(mse).
Any one tripping halts the iteration. TargetError is rejected together with
the loop flag: the error is not expected to keep decreasing across
independent re-loops.

------------------------------------------------------------
Risk bound
------------------------------------------------------------

At most one iteration of work is lost to an unexpected termination.
Cancellation finishes the current batch, persists, and exits cleanly.
"""
