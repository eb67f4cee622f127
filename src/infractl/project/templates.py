"""Initial file contents written by init-project and init-host."""

from __future__ import annotations

ANSIBLE_CFG = """\
[defaults]
inventory = inventory.yml
collections_path = ./
vault_password_file = .ansible-vault-password
interpreter_python = auto_silent
stdout_callback = default
callback_result_format = yaml
retry_files_enabled = False
gathering = smart
fact_caching = jsonfile
fact_caching_connection = .cache/facts

[ssh_connection]
pipelining = True
"""

INVENTORY = """\
all:
  hosts: {}
"""

PLAYBOOK = """\
# hosts and the roles deployed to them
# - hosts: my.example.org
#   roles:
#     - infractl.roles.common
"""

REQUIREMENTS = """\
collections:
  - name: https://gitlab.com/infractl/roles.git
    type: git
    version: release
"""

GITIGNORE = """\
.venv/
.cache/
.ansible-vault-password
backups/
ansible_collections/
"""

GROUP_VARS_ALL = """\
# variables shared by all hosts of the project
# https://docs.ansible.com/ansible/latest/inventory_guide/intro_inventory.html
"""

PLAY = """\

- hosts: {host}
  roles:
    - infractl.roles.common
"""

HOST_VARS = """\
# variables for {host}
ansible_host: {host}
ansible_user: "{{{{ vault_ansible_user }}}}"
ansible_port: 22
ansible_become_pass: "{{{{ vault_ansible_become_pass }}}}"
"""

HOST_VAULT = """\
# secret variables for {host} (encrypted at rest)
vault_ansible_user: "deploy"
# sudo password of the deploy user on the host, set it manually
vault_ansible_become_pass: "CHANGEME"
vault_backup_passphrase: "CHANGEME32"
vault_monitoring_token: "CHANGEME24"
"""
