from test.utils.fixtures import aws_environ, aws, table, s3_client, ses_client, clock, services, chalice_client  # noqa: F401
