from enum import Enum


class Topic(str, Enum):
    SENSOR          = "sensor"            # device -> host
    CLASS_OUTPUT    = "class_output"      # device -> host
    STATE           = "state"             # host -> device (also subscribed)
    TRAINING_PROMPT = "training_prompt"   # host -> device only

    @classmethod
    def parse(cls, name: str) -> "Topic | None":
        try:
            return cls(name)
        except ValueError:
            return None


# Topics the bridge subscribes to after every successful connect.
INBOUND_TOPICS = (Topic.SENSOR, Topic.CLASS_OUTPUT, Topic.STATE)


class AppState(str, Enum):
    IDLE              = "idle"
    CALIBRATION_START = "calibration start"
    CALIBRATION_END   = "calibration end"
    EVALUATION_START  = "evaluation start"
    EVALUATING        = "evaluating"
    EVALUATION_END    = "evaluation end"


CANCEL_PROMPT = "cancel"


class BusTopic:
    """Topic names used on the in-process EventBus."""

    CONNECTION_STATE      = "connection.state"
    TELEMETRY_SAMPLE      = "telemetry.sample"
    TELEMETRY_CLEARED     = "telemetry.cleared"
    CLASSIFICATION        = "classification"
    DEVICE_STATE          = "device.state"
    BRIDGE_MESSAGE        = "bridge.message"
    CALIBRATION_STEP      = "calibration.step"
    CALIBRATION_TICK      = "calibration.tick"
    CALIBRATION_COMPLETED = "calibration.completed"
    CALIBRATION_CANCELLED = "calibration.cancelled"
    WORKFLOW_REJECTED     = "workflow.rejected"
