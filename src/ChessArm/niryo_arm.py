"""
Niryo Ned2 implementation of the actuator and of the gripper pose source.

Everything above this module works in millimeters and with tool orientation
vectors; pyniryo works in meters with roll / pitch / yaw.
"""

import logging
import math

import numpy as np
from pyniryo import NiryoRobot, PoseObject

from .errors import ActuationError
from .frames import RigidFrameTransform

logger = logging.getLogger(__name__)

# Robot's wait pose (SetUp in Niryo Studio), meters / radians
WAIT_POSE = (0.134, 0.0, 0.150, 0.0, math.pi / 2, 0.0)


def orientation_to_rpy(orientation):
    """
    Tool orientation vector -> (roll, pitch, yaw) in radians.

    The Ned2 tool points along its x axis: pitch pi/2 points it straight
    down, yaw turns it around the base Z axis and theta is the roll around
    the tool axis.
    """
    d = np.array([orientation.ox, orientation.oy, orientation.oz], dtype=np.float64)
    norm = np.linalg.norm(d)
    if norm == 0:
        raise ActuationError("orientation vector can't be zero")
    dx, dy, dz = d / norm
    pitch = math.asin(max(-1.0, min(1.0, -dz)))
    yaw = math.atan2(dy, dx) if abs(dx) > 1e-9 or abs(dy) > 1e-9 else 0.0
    roll = math.radians(orientation.theta)
    return roll, pitch, yaw


def waypoint_to_pose(waypoint):
    roll, pitch, yaw = orientation_to_rpy(waypoint.orientation)
    return PoseObject(
        waypoint.x * 0.001, waypoint.y * 0.001, waypoint.z * 0.001,
        roll, pitch, yaw
    )


class NiryoActuator:
    """
    Arm and gripper of a Ned2.

    Args:
        robot: connected NiryoRobot.
        grip_sensor_pin: analog input wired to the gripper position sensor.
        grip_sensor_scale: multiplier from volts to the confidence scale.
        wait_pose: (x, y, z, roll, pitch, yaw) of the start pose.
    """

    def __init__(self, robot: NiryoRobot, grip_sensor_pin="AI1",
                 grip_sensor_scale=100.0, wait_pose=WAIT_POSE):
        self.robot = robot
        self.grip_sensor_pin = grip_sensor_pin
        self.grip_sensor_scale = grip_sensor_scale
        self.wait_pose = PoseObject(*wait_pose)

    def _call(self, what, fn, *args):
        try:
            return fn(*args)
        except Exception as e:
            raise ActuationError(f"can't {what}: {e}") from e

    def move_to(self, waypoint):
        pose = waypoint_to_pose(waypoint)
        logger.debug("[ROBOT] move to %s", pose)
        self._call(f"move to {pose}", self.robot.move, pose)

    def prepare_gripper(self):
        self._call("open the gripper", self.robot.open_gripper)

    def open_gripper(self):
        self._call("release the tool", self.robot.release_with_tool)

    def grab(self):
        self._call("grasp", self.robot.grasp_with_tool)
        return True

    def grip_confidence(self):
        value = self._call("read the grip sensor", self.robot.analog_read, self.grip_sensor_pin)
        return float(value) * self.grip_sensor_scale

    def go_home(self):
        self._call("go to the wait pose", self.robot.move, self.wait_pose)
        self.open_gripper()
        self.robot.wait(1)

    def gripper_pose(self):
        """(x, y, z) in mm and roll in degrees, as the frame transform expects."""
        pose = self._call("read the pose", self.robot.get_pose)
        return (pose.x * 1000.0, pose.y * 1000.0, pose.z * 1000.0, math.degrees(pose.roll))


class NiryoFrameTransform(RigidFrameTransform):
    """Fixed hand-eye transform, gripper pose read from the Ned2."""

    def __init__(self, actuator: NiryoActuator, camera_to_world):
        super().__init__(camera_to_world, actuator.gripper_pose)


def connect(robot_ip, max_velocity=100):
    """Connect to and set up a Ned2 the way the game expects it."""
    robot = NiryoRobot(robot_ip)
    robot.clear_collision_detected()
    robot.calibrate_auto()
    robot.update_tool()
    robot.set_arm_max_velocity(max_velocity)
    return robot
