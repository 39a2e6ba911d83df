from bolt_reviews.utils.csv_codec import parse_row, quote, split_lines, write_csv


class TestParseRow:
    def test_plain_fields(self):
        assert parse_row("a,b,c") == ["a", "b", "c"]

    def test_fields_are_trimmed(self):
        assert parse_row("  a , b ,c  ") == ["a", "b", "c"]

    def test_quoted_field_with_comma(self):
        assert parse_row('x,"hello, world",y') == ["x", "hello, world", "y"]

    def test_escaped_quotes(self):
        assert parse_row('"He said ""wow"", loved it"') == ['He said "wow", loved it']

    def test_trailing_empty_field_is_emitted(self):
        assert parse_row("a,b,") == ["a", "b", ""]

    def test_empty_line_is_one_empty_field(self):
        assert parse_row("") == [""]

    def test_quoted_empty_field(self):
        assert parse_row('a,"",c') == ["a", "", "c"]

    def test_carriage_return_is_trimmed(self):
        assert parse_row("a,b\r") == ["a", "b"]


class TestWriter:
    def test_quote_doubles_internal_quotes(self):
        assert quote('He said "wow", loved it') == '"He said ""wow"", loved it"'

    def test_quote_none_is_empty(self):
        assert quote(None) == '""'

    def test_write_csv_joins_with_newlines(self):
        content = write_csv(["A", "B"], [["1", quote("x,y")], [2, None]])
        assert content == 'A,B\n1,"x,y"\n2,'

    def test_round_trip_through_parser(self):
        original = ['He said "wow", loved it', "plain", "comma, inside", ""]
        line = ",".join(quote(value) for value in original)
        assert parse_row(line) == original

    def test_split_lines_drops_blank_lines(self):
        assert split_lines("h1,h2\n\n a,b \n   \n") == ["h1,h2", " a,b "]
