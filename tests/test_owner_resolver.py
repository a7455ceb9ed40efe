"""
Tests for owner resolution strategies.
"""

import pytest

from core.exceptions import DirectoryTransportError
from core.models import DirectoryUser, Sponsor
from core.owner_resolver import (
    CLOUD_SPONSOR, EXTENSION_ATTRIBUTE, PREFIX_STRIP, OwnerResolver, parse_owner_attribute
)


@pytest.fixture
def resolver(directory, cloud):
    return OwnerResolver(directory, cloud, ["adm", "admin", "da"])


class TestParseOwnerAttribute:

    def test_reads_owner_key_case_insensitively(self):
        assert parse_owner_attribute("team=infra; OWNER = jdoe ;cost=42") == "jdoe"

    def test_missing_owner_key(self):
        assert parse_owner_attribute("team=infra;cost=42") is None

    def test_empty_value(self):
        assert parse_owner_attribute("") is None
        assert parse_owner_attribute("owner=") is None


class TestPrefixStrip:

    def test_dot_separator(self, resolver, owner_jsmith):
        result = resolver.resolve(sam_account_name="adm.jsmith")
        assert result.owner_id == "jsmith"
        assert result.email == "john.smith@contoso.com"
        assert result.strategy == PREFIX_STRIP

    def test_underscore_separator(self, resolver, owner_jsmith):
        assert resolver.resolve(sam_account_name="ADM_jsmith").owner_id == "jsmith"

    def test_longest_prefix_tried_first(self, resolver, directory, owner_jsmith):
        # "admin" must not be shadowed by "adm" (which would not match anyway)
        result = resolver.resolve(sam_account_name="admin.jsmith")
        assert result.owner_id == "jsmith"
        directory.find_owner.assert_called_once_with("jsmith")

    def test_only_first_matching_prefix_is_used(self, directory, cloud):
        # "da_x.jsmith": longest matching prefix "da_x" yields "jsmith";
        # the shorter "da" candidate "x.jsmith" is never looked up
        directory.add(DirectoryUser(sam_account_name="x.jsmith", mail="other@contoso.com"))
        resolver = OwnerResolver(directory, cloud, ["da", "da_x"])
        result = resolver.resolve(sam_account_name="da_x.jsmith")
        assert result.is_resolved is False
        directory.find_owner.assert_called_once_with("jsmith")

    def test_no_separator_does_not_match(self, resolver, directory, owner_jsmith):
        assert resolver.resolve(sam_account_name="admjsmith").is_resolved is False
        directory.find_owner.assert_not_called()


class TestFallbacks:

    def test_prefix_wins_over_extension_attribute(self, resolver, directory, owner_jsmith):
        directory.add(DirectoryUser(sam_account_name="jdoe", mail="jane.doe@contoso.com"))
        result = resolver.resolve(sam_account_name="adm.jsmith", extension_attribute="owner=jdoe")
        assert result.owner_id == "jsmith"
        assert result.strategy == PREFIX_STRIP

    def test_extension_attribute_used_when_prefix_candidate_missing(self, resolver, directory):
        directory.add(DirectoryUser(sam_account_name="jdoe", mail="jane.doe@contoso.com"))
        result = resolver.resolve(sam_account_name="adm.svcbackup", extension_attribute="Owner=jdoe")
        assert result.owner_id == "jdoe"
        assert result.strategy == EXTENSION_ATTRIBUTE

    def test_extension_attribute_by_address(self, resolver, directory):
        directory.add(DirectoryUser(sam_account_name="jdoe", user_principal_name="jdoe@contoso.com",
                                    mail="jane.doe@contoso.com"))
        result = resolver.resolve(sam_account_name="svc-backup", extension_attribute="owner=jdoe@contoso.com")
        assert result.owner_id == "jdoe"

    def test_extension_attribute_owner_must_exist(self, resolver):
        assert resolver.resolve(sam_account_name="svc-backup", extension_attribute="owner=ghost").is_resolved is False

    def test_sponsor_for_cloud_native_account(self, resolver, cloud):
        cloud.sponsors["oid-1"] = [Sponsor(mail="", user_principal_name="sponsor@contoso.com"),
                                   Sponsor(mail="second@contoso.com", user_principal_name="second@contoso.com")]
        result = resolver.resolve(object_id="oid-1")
        assert result.email == "sponsor@contoso.com"
        assert result.strategy == CLOUD_SPONSOR

    def test_sponsor_mail_preferred(self, resolver, cloud):
        cloud.sponsors["oid-1"] = [Sponsor(mail="sponsor.mail@contoso.com", user_principal_name="sponsor@contoso.com")]
        assert resolver.resolve(object_id="oid-1").email == "sponsor.mail@contoso.com"

    def test_sponsor_not_used_for_directory_accounts(self, resolver, cloud):
        cloud.sponsors["oid-1"] = [Sponsor(mail="sponsor@contoso.com")]
        result = resolver.resolve(sam_account_name="svc-backup", object_id="oid-1")
        assert result.is_resolved is False
        cloud.get_sponsors.assert_not_called()

    def test_no_sponsor_is_unresolved(self, resolver):
        assert resolver.resolve(object_id="oid-2").is_resolved is False

    def test_lookup_errors_fall_through(self, resolver, directory):
        directory.add(DirectoryUser(sam_account_name="jdoe", mail="jane.doe@contoso.com"))
        calls = []

        def flaky(value):
            calls.append(value)
            if value == "jsmith":
                raise DirectoryTransportError("timeout")
            return directory.users.get(value)

        directory.find_owner.side_effect = flaky
        result = resolver.resolve(sam_account_name="adm.jsmith", extension_attribute="owner=jdoe")
        assert result.owner_id == "jdoe"
        assert calls == ["jsmith", "jdoe"]

    def test_owner_without_mail_still_resolves(self, resolver, directory):
        directory.add(DirectoryUser(sam_account_name="nomail"))
        result = resolver.resolve(sam_account_name="adm.nomail")
        assert result.is_resolved is True
        assert result.email == ""
