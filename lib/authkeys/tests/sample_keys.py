""" Public keys used throughout the test suite and the doctests

None of these are real keys; they only have the right shape.
"""

EXAMPLE_KEY = ('ssh-rsa AAAAB3NzaC1yc2EAAAADAQABAAAAgQC7x9Kq2ZpW4cR+uXf0'
               'Lm3bT8s1dYv6nHaQe5JgP0wzNkR2oD/4Ui9tVcBfMxE7lAy3hWq==')

EXAMPLE_DSA_KEY = ('ssh-dss AAAAB3NzaC1kc3MAAACBAP1/U4EddRIpUt9KnC7s5Of2EbdS'
                   'PO9EAMMeP4C2USZpRV1AIlH7WT2NWPq/xfW6MPbLm1Vs14E7gB00b/J')

EXAMPLE_RSA1_KEY = ('1024 35 1505898176396285317962408745208906131733580'
                    '44139813637427162093861744396155139812447311932701')
