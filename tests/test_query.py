"""
Tests for ChainedQuery serialization.
"""

import pytest

from prestclient import AggregateFunction, RenderMode, RequestType

BASE = "http://prest.test/public/products"


def url_of(query):
    return query.build().url


class TestPagination:
    """Tests for _page / _page_size / _select and shape directives."""

    def test_page_and_page_size(self, client):
        """Test the classic pagination chain."""
        query = client.table("products").list().page(1).page_size(10)
        assert url_of(query) == f"{BASE}?_page=1&_page_size=10"

    def test_no_clauses_no_query_string(self, client):
        """Test a bare list has no '?'."""
        assert url_of(client.table("products").list()) == BASE

    def test_select_joins_fields(self, client):
        query = client.table("products").list().select("id", "name")
        assert url_of(query) == f"{BASE}?_select=id,name"

    def test_count_defaults_to_star(self, client):
        assert url_of(client.table("products").list().count()) == f"{BASE}?_count=*"
        assert url_of(client.table("products").list().count("id")) == f"{BASE}?_count=id"

    def test_boolean_directives(self, client):
        """Test booleans are rendered lower-case."""
        query = client.table("products").list().count_first().distinct(False)
        assert url_of(query) == f"{BASE}?_count_first=true&_distinct=false"

    def test_order_passes_signs_through(self, client):
        query = client.table("products").list().order("-created_at", "id")
        assert url_of(query) == f"{BASE}?_order=-created_at,id"

    def test_group_by(self, client):
        query = client.table("products").list().group_by("category_id", "supplier_id")
        assert url_of(query) == f"{BASE}?_groupby=category_id,supplier_id"

    def test_renderer_sets_mode(self, client):
        query = client.table("products").list().renderer("xml")
        assert url_of(query) == f"{BASE}?_renderer=xml"
        assert query.render_mode is RenderMode.XML

    def test_renderer_rejects_unknown_mode(self, client):
        with pytest.raises(ValueError):
            client.table("products").list().renderer("csv")

    @pytest.mark.parametrize("method", ["select", "order", "group_by"])
    def test_field_directives_need_fields(self, client, method):
        """Test an empty field list is rejected instead of sending '_select='."""
        with pytest.raises(ValueError):
            getattr(client.table("products").list(), method)()


class TestFilters:
    """Tests for comparison, membership, null and pattern filters."""

    def test_eq_is_encoded(self, client):
        query = client.table("products").list().eq("name", "a b&c")
        assert url_of(query) == f"{BASE}?name=a%20b%26c"

    def test_comparison_operators(self, client):
        query = (
            client.table("products").list()
            .gt("price", 10)
            .gte("price", 11)
            .lt("stock", 5)
            .lte("stock", 6)
            .ne("status", "gone")
        )
        assert url_of(query) == (
            f"{BASE}?price=$gt.10&price=$gte.11&stock=$lt.5&stock=$lte.6&status=$ne.gone"
        )

    def test_boolean_value(self, client):
        assert url_of(client.table("products").list().eq("active", True)) == f"{BASE}?active=true"

    def test_in_is_not_encoded(self, client):
        """Test in_ keeps the literal comma-joined members."""
        query = client.table("products").list().in_("x", [1, 2, 3])
        assert url_of(query) == f"{BASE}?x=$in.1,2,3"

    def test_not_in_keeps_raw_values(self, client):
        query = client.table("products").list().not_in("name", ["a b", "c"])
        assert url_of(query) == f"{BASE}?name=$nin.a b,c"

    def test_in_accepts_generators(self, client):
        query = client.table("products").list().in_("x", (n for n in range(2)))
        assert url_of(query) == f"{BASE}?x=$in.0,1"

    @pytest.mark.parametrize("value", ["Pune", b"12", {"a": 1}])
    def test_in_rejects_scalars(self, client, value):
        """Test a bare string is not split into characters."""
        query = client.table("products").list()
        with pytest.raises(TypeError):
            query.in_("city", value)
        with pytest.raises(TypeError):
            query.not_in("city", value)

    def test_in_single_member(self, client):
        query = client.table("products").list().in_("city", ["Pune"])
        assert url_of(query) == f"{BASE}?city=$in.Pune"

    def test_null_tests(self, client):
        query = client.table("products").list().null("deleted_at").not_null("name")
        assert url_of(query) == f"{BASE}?deleted_at=$null&name=$notnull"

    def test_patterns_are_encoded(self, client):
        query = (
            client.table("products").list()
            .like("name", "%tea%")
            .ilike("name", "Chai")
            .not_like("name", "x y")
        )
        assert url_of(query) == (
            f"{BASE}?name=$like.%25tea%25&name=$ilike.Chai&name=$notlike.x%20y"
        )


class TestFilterRange:
    """Tests for filter_range bounds."""

    def test_both_bounds(self, client):
        query = client.table("products").list().filter_range("price", 1, 5)
        assert url_of(query) == f"{BASE}?price=$gte.1&price=$lte.5"

    def test_zero_is_a_bound(self, client):
        """Test numeric zero is kept while None is skipped."""
        query = client.table("products").list().filter_range("price", 0, None)
        assert url_of(query) == f"{BASE}?price=$gte.0"

        query = client.table("products").list().filter_range("price", None, 0)
        assert url_of(query) == f"{BASE}?price=$lte.0"

    def test_missing_bounds_emit_nothing(self, client):
        assert url_of(client.table("products").list().filter_range("price")) == BASE
        assert url_of(client.table("products").list().filter_range("price", "", False)) == BASE

    def test_dates(self, client):
        query = client.table("orders").list().filter_range("day", "2024-01-01", "2024-01-31")
        assert url_of(query).endswith("?day=$gte.2024-01-01&day=$lte.2024-01-31")


class TestSpecialClauses:
    """Tests for join, jsonb, full-text search and having."""

    def test_join(self, client):
        query = client.table("orders").list().join(
            "inner", "public.customers", "orders.customer_id", "$eq", "customers.id"
        )
        assert url_of(query).endswith(
            "?_join=inner:public.customers:orders.customer_id:$eq:customers.id"
        )

    def test_join_rejects_unknown_type(self, client):
        with pytest.raises(ValueError):
            client.table("orders").list().join("cross", "t", "a", "$eq", "b")

    def test_jsonb_filter(self, client):
        query = client.table("docs").list().jsonb_filter("data", "owner", "ana maria")
        assert url_of(query).endswith("?data->>owner:jsonb=ana%20maria")

    def test_text_search_with_language(self, client):
        query = client.table("docs").list().text_search("body", "fat & rat", "english")
        assert url_of(query).endswith("?body$english:tsquery=fat%20%26%20rat")

    def test_text_search_without_language(self, client):
        query = client.table("docs").list().text_search("body", "rat")
        assert url_of(query).endswith("?body:tsquery=rat")

    def test_having(self, client):
        query = client.table("orders").list().having("sum", "total", "$gt", 500)
        assert url_of(query).endswith("?having:sum:total:$gt:500")

    def test_having_accepts_enum(self, client):
        query = client.table("orders").list().having(AggregateFunction.AVG, "total", "$lt", 10)
        assert url_of(query).endswith("?having:avg:total:$lt:10")


class TestAggregates:
    """Tests for the trailing aggregate _select."""

    def test_aggregate_after_group_by(self, client):
        query = client.table("categories").list().group_by("category_id").sum("category_id")
        assert url_of(query).endswith("&_select=sum:category_id")

    def test_aggregate_position_ignores_call_order(self, client):
        """Test aggregates go last whatever the call order was."""
        before = client.table("categories").list().sum("category_id").group_by("category_id")
        after = client.table("categories").list().group_by("category_id").sum("category_id")
        assert url_of(before) == url_of(after) == (
            "http://prest.test/public/categories?_groupby=category_id&_select=sum:category_id"
        )

    def test_all_functions(self, client):
        query = (
            client.table("orders").list()
            .sum("a").avg("b").std_dev("c").variance("d").max("e").min("f")
        )
        assert url_of(query) == (
            "http://prest.test/public/orders"
            "?_select=sum:a,avg:b,stddev:c,variance:d,max:e,min:f"
        )

    def test_select_and_aggregate_both_emitted(self, client):
        """Test an explicit select is not merged with aggregates."""
        query = client.table("orders").list().select("city").group_by("city").sum("total")
        assert url_of(query).endswith("?_select=city&_groupby=city&_select=sum:total")

    def test_aggregates_are_not_clauses(self, client):
        query = client.table("orders").list().max("total")
        assert query.clauses == ()
        assert [a.render() for a in query.aggregates] == ["max:total"]


class TestImmutability:
    """Tests for builder immutability and ordering."""

    def test_builders_return_new_queries(self, client):
        base = client.table("orders").list().page_size(10)
        open_orders = base.eq("status", "open")
        big_orders = base.gt("total", 100)

        assert url_of(base) == "http://prest.test/public/orders?_page_size=10"
        assert url_of(open_orders).endswith("?_page_size=10&status=open")
        assert url_of(big_orders).endswith("?_page_size=10&total=$gt.100")

    def test_clause_order_matches_calls(self, client):
        query = (
            client.table("orders").list()
            .eq("a", 1)
            .page(2)
            .order("b")
            .null("c")
            .page_size(5)
        )
        assert url_of(query).split("?", 1)[1].split("&") == [
            "a=1", "_page=2", "_order=b", "c=$null", "_page_size=5",
        ]

    def test_build_is_frozen(self, client):
        request = client.table("orders").update({"status": "x"}).eq("id", 3).build()
        assert request.request_type is RequestType.PUT
        assert request.method == "PUT"
        assert request.body == {"status": "x"}
        assert request.operation == "update public.orders"
        with pytest.raises(AttributeError):
            request.url = "http://elsewhere"

    def test_repr_shows_url(self, client):
        assert "GET http://prest.test/public/orders?_page=1" in repr(
            client.table("orders").list().page(1)
        )
