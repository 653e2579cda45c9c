import argparse
import asyncio
from typing import Optional

from myo_host.calibration.session import CalibrationStepChanged
from myo_host.core.errors import ConfigurationError
from myo_host.core.event_bus import EventBus
from myo_host.core.events import (
    ClassificationReceived,
    ConnectionState,
    ConnectionStateChanged,
    DeviceStateNotice,
    TelemetrySampleAdded,
    WorkflowRejected,
)
from myo_host.core.messages import BusTopic
from myo_host.core.runtime import build_runtime


def attach_prints(bus: EventBus, show_samples: bool = True) -> None:

    def on_conn(ev: ConnectionStateChanged) -> None:
        err = f" ({ev.error})" if ev.error is not None else ""
        print(f"[CONN] {ev.state.value}{err}")

    def on_sample(ev: TelemetrySampleAdded) -> None:
        vals = " ".join(f"{v:+.3f}V" for v in ev.channel_values)
        print(f"[EMG] {vals}")

    def on_class(ev: ClassificationReceived) -> None:
        note = " (default)" if ev.resolved_by_default else ""
        print(f"[CLASS] {ev.grasp.display}{note}")

    def on_state(ev: DeviceStateNotice) -> None:
        print(f"[STATE] {ev.text}")

    def on_step(ev: CalibrationStepChanged) -> None:
        reps = f"  {ev.repetition_label}" if ev.repetition_label else ""
        print(f"[CAL] {ev.step.instruction}  {ev.display_seconds}s{reps}")

    def on_rejected(ev: WorkflowRejected) -> None:
        print(f"[WORKFLOW] {ev.action} rejected: {ev.reason}")

    bus.subscribe(BusTopic.CONNECTION_STATE, on_conn)
    if show_samples:
        bus.subscribe(BusTopic.TELEMETRY_SAMPLE, on_sample)
    bus.subscribe(BusTopic.CLASSIFICATION, on_class)
    bus.subscribe(BusTopic.DEVICE_STATE, on_state)
    bus.subscribe(BusTopic.CALIBRATION_STEP, on_step)
    bus.subscribe(BusTopic.CALIBRATION_COMPLETED, lambda _ev: print("[CAL] complete"))
    bus.subscribe(BusTopic.CALIBRATION_CANCELLED, lambda _ev: print("[CAL] cancelled"))
    bus.subscribe(BusTopic.WORKFLOW_REJECTED, on_rejected)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Monitor a myoelectric controller over MQTT.")
    p.add_argument("--profile", default="default", help="host profile name (config/host_profile_<name>.yaml)")
    p.add_argument("--host", default=None, help="broker host (overrides profile)")
    p.add_argument("--port", default=None, help="broker port (overrides profile)")
    p.add_argument("--quiet-samples", action="store_true", help="do not print every sensor sample")
    mode = p.add_mutually_exclusive_group()
    mode.add_argument("--calibrate", action="store_true", help="run one calibration session and exit")
    mode.add_argument("--evaluate", type=float, metavar="SECONDS", help="run an evaluation for SECONDS")
    return p


async def run(args: argparse.Namespace) -> int:
    rt = build_runtime(args.profile)
    attach_prints(rt.bus, show_samples=not args.quiet_samples)

    try:
        task = rt.workflow.connect(args.host, args.port)
    except ConfigurationError as e:
        print(f"[CONN] {e}")
        return 2

    await task
    if rt.bridge.state is not ConnectionState.CONNECTED:
        await rt.close()
        return 1

    try:
        if args.calibrate:
            session = rt.workflow.start_calibration()
            if session is not None:
                await session.wait()
        elif args.evaluate is not None:
            evaluation = rt.workflow.start_evaluation()
            await asyncio.sleep(args.evaluate)
            if evaluation is not None:
                print(f"[EVAL] last classification: {evaluation.current.display}")
            rt.workflow.end_evaluation()
        else:
            while rt.bridge.is_connected:
                await asyncio.sleep(0.5)
        await rt.bridge.flush()
    except asyncio.CancelledError:
        rt.workflow.cancel_calibration()
        raise
    finally:
        await rt.close()
    return 0


def main(argv: Optional[list] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        return asyncio.run(run(args))
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
