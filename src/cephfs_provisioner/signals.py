from blinker import signal

SIGNAL_SENDER = 'provisioner'

signal_provision_pre = signal('provision_pre')
signal_provision_post_success = signal('provision_post_success')
signal_provision_post_error = signal('provision_post_error')
signal_delete_pre = signal('delete_pre')
signal_delete_post_success = signal('delete_post_success')
signal_delete_post_error = signal('delete_post_error')
signal_delete_ignored = signal('delete_ignored')
