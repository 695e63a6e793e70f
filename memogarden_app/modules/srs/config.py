# modules/srs/config.py

from fsrs_rs_python import DEFAULT_PARAMETERS


class SRSDefaultConfig:
    SRS_DESIRED_RETENTION = 0.90
    SRS_MIN_INTERVAL = 1
    SRS_MAX_INTERVAL = 36500
    SRS_LEARNING_STEPS_MINUTES = [1, 10]
    SRS_RELEARNING_STEPS_MINUTES = [10]
    SRS_PARAMETERS = list(DEFAULT_PARAMETERS)
