from nestwatch.modules.process.cooldown import CooldownLatch


def test_latch_only_triggers_when_idle(scheduler) -> None:
    latch = CooldownLatch("motion", 180.0, scheduler)

    assert latch.trigger()
    assert not latch.trigger()
    assert latch.active
    assert scheduler.delays() == [180.0]


def test_latch_returns_to_idle_after_cooldown(scheduler) -> None:
    latch = CooldownLatch("doorbell", 30.0, scheduler)
    latch.trigger()

    scheduler.fire_all()

    assert not latch.active
    assert latch.trigger()
