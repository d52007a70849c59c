"""Partners app package.

Partners are the individuals and organisations leasing out their
parking spots. The app stores partner profiles together with an
append-only audit log of actions taken on the partner's behalf.
"""
