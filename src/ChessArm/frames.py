"""
Camera frame -> world frame.

The camera is fixed relative to the robot base, so a single 4x4 matrix
(hand-eye calibration, millimeters) maps the camera cloud into the world.
"""

import numpy as np


class RigidFrameTransform:
    """
    Fixed camera-to-world transform.

    Args:
        camera_to_world: 4x4 homogeneous matrix.
        gripper_pose_fn: optional callable returning the gripper world pose
            as (x, y, z, theta): position in mm, theta the rotation of the
            tool around its own axis in degrees.
    """

    def __init__(self, camera_to_world=None, gripper_pose_fn=None):
        if camera_to_world is None:
            camera_to_world = np.eye(4)
        self.camera_to_world = np.asarray(camera_to_world, dtype=np.float64)
        if self.camera_to_world.shape != (4, 4):
            raise ValueError("camera_to_world must be a 4x4 matrix")
        self.gripper_pose_fn = gripper_pose_fn

    def transform_point_cloud(self, cloud):
        return cloud.transformed(self.camera_to_world)

    def transform_point(self, point):
        p = np.append(np.asarray(point, dtype=np.float64), 1.0)
        return (self.camera_to_world @ p)[:3]

    def gripper_pose(self):
        if self.gripper_pose_fn is None:
            return (0.0, 0.0, 0.0, 0.0)
        return tuple(float(v) for v in self.gripper_pose_fn())

    def gripper_position(self):
        return np.array(self.gripper_pose()[:3])

    def gripper_theta(self):
        pose = self.gripper_pose()
        return pose[3] if len(pose) > 3 else 0.0
