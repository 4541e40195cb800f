"""
Behavior tracking and preference derivation.

Modules:
  store    — BehaviorStore protocol and the lock-guarded in-memory store
  profile  — ProfileBuilder (track_* write paths, snapshot / UI read paths)
"""
