import os


class Environment:

    @property
    def options(self):
        options = {}
        for item in ['CRYSROT_CONFIG',
                     'CRYSROT_NUM_THREADS',
                     'CRYSROT_QUATERNION_LAYOUT',
                     ]:
            options[item] = os.environ[item] if item in os.environ else None

        return options
