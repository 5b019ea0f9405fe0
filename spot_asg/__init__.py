"""spot-asg: discover tagged EC2 Auto Scaling groups and move them onto Spot capacity."""

__version__ = "0.1.0"
